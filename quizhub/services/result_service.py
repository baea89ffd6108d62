"""
Test result operations: submission, reads, lifecycle changes, telemetry
and per-user statistics.

Every operation runs to completion against the store inside a single
request. Concurrent status changes on the same result are last-write-wins;
there is no version check.
"""
import logging
import math
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from sqlalchemy.orm import Session

from quizhub.core.answer_validation import dump_answers, validate_answers
from quizhub.core.datetime_utils import utc_now
from quizhub.core.db_error_handling import handle_db_error
from quizhub.core.error_responses import (
    ErrorMessages,
    raise_invalid_id,
    raise_invalid_transition,
    raise_not_found,
    raise_validation_error,
)
from quizhub.core.result_lifecycle import (
    apply_status,
    check_status_transition,
    ensure_can_view,
    filter_update_payload,
    is_admin,
    parse_status,
    resolve_initial_status,
)
from quizhub.core.scoring import compute_stats
from quizhub.db.result_store import ResultStore
from quizhub.models.models import ResultStatus, Test, TestResult, UserRole

logger = logging.getLogger(__name__)

RECENT_RESULTS_LIMIT = 10

# Upper bound of the Integer duration_ms column.
MAX_DURATION_MS = 2_147_483_647

Role = Union[UserRole, str, None]


def parse_id(value: Any, field: str = "id") -> str:
    """
    Normalize a document identifier.

    Raises:
        ServiceError: INVALID_ID if the value is not a UUID
    """
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise_invalid_id(ErrorMessages.invalid_id(field))


def normalize_duration_ms(value: Any) -> int:
    """
    Coerce an elapsed time to a non-negative integer, 0 when unusable.

    Values above the column range are clamped to MAX_DURATION_MS.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return min(MAX_DURATION_MS, max(0, int(round(value))))


def build_test_snapshot(test: Test) -> Dict[str, Any]:
    """Freeze the test metadata a result should keep after the test changes."""
    return {
        "test_id": test.id,
        "test_title": test.test_title,
        "main_topic": test.main_topic,
        "sub_topic": test.sub_topic or "",
        "test_type": test.test_type.value,
        "difficulty": test.difficulty.value,
    }


def _isoformat(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


class ResultService:
    """Operations on test results for one request's database session."""

    def __init__(self, db: Session):
        self.db = db
        self.store = ResultStore(db)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_or_404(self, result_id: Any) -> TestResult:
        result = self.store.get(parse_id(result_id))
        if result is None:
            raise_not_found(ErrorMessages.TEST_RESULT_NOT_FOUND)
        return result

    def _get_visible(
        self, result_id: Any, requester_id: Optional[str], requester_role: Role
    ) -> TestResult:
        result = self._get_or_404(result_id)
        ensure_can_view(result, requester_id, requester_role)
        return result

    def _resolve_snapshot(self, test_id: str, payload: Mapping[str, Any]) -> Dict:
        snapshot = payload.get("test_snapshot")
        if snapshot is not None:
            if not isinstance(snapshot, dict):
                raise_validation_error("test_snapshot must be an object.")
            return {**snapshot, "test_id": test_id}

        test = self.store.get_test(test_id)
        if test is None:
            raise_not_found(ErrorMessages.TEST_NOT_FOUND)
        return build_test_snapshot(test)

    # =========================================================================
    # Create / read
    # =========================================================================

    def create_result(
        self, payload: Mapping[str, Any], requester_role: Role
    ) -> TestResult:
        """
        Validate a submission, derive its statistics and persist it.

        Args:
            payload: test_id, user_id, answers and optional duration_ms, status,
                start_time, end_time, device_info, ip_address, test_snapshot
            requester_role: Role of the submitting user

        Returns:
            The persisted result

        Raises:
            ServiceError: INVALID_ID, VALIDATION_ERROR or NOT_FOUND
        """
        test_id = parse_id(payload.get("test_id"), "test_id")
        user_id = parse_id(payload.get("user_id"), "user_id")
        answers = validate_answers(payload.get("answers"))
        stats = compute_stats(answers)
        status = resolve_initial_status(payload.get("status"), requester_role)

        with handle_db_error(self.db, "create test result"):
            snapshot = self._resolve_snapshot(test_id, payload)
            result = TestResult(
                test_id=test_id,
                test_snapshot=snapshot,
                user_id=user_id,
                answers=dump_answers(answers),
                total_questions=stats.total_questions,
                correct_count=stats.correct_count,
                percentage=stats.percentage,
                duration_ms=normalize_duration_ms(payload.get("duration_ms")),
                start_time=payload.get("start_time") or utc_now(),
                end_time=payload.get("end_time"),
                device_info=payload.get("device_info"),
                ip_address=payload.get("ip_address"),
                status=status,
                behaviors=[],
                session={},
            )
            result = self.store.add(result)

        logger.info(
            f"Created test result {result.id} for user {user_id} "
            f"({stats.correct_count}/{stats.total_questions}, status={status.value})"
        )
        return result

    def list_results(
        self,
        filters: Mapping[str, Any],
        requester_id: str,
        requester_role: Role,
    ) -> List[TestResult]:
        """
        List results by user_id, status and test_id.

        Non-admin callers only ever see their own results, whatever user_id
        filter they pass.
        """
        user_id = filters.get("user_id")
        if not is_admin(requester_role):
            user_id = requester_id
        elif user_id is not None:
            user_id = parse_id(user_id, "user_id")

        status = filters.get("status")
        test_id = filters.get("test_id")
        with handle_db_error(self.db, "list test results"):
            return self.store.list(
                user_id=user_id,
                status=parse_status(status) if status is not None else None,
                test_id=parse_id(test_id, "test_id") if test_id is not None else None,
            )

    def get_my_results(
        self, user_id: str, test_id: Optional[str] = None
    ) -> List[TestResult]:
        """A user's active results, excluding likely-abandoned attempts."""
        with handle_db_error(self.db, "fetch my test results"):
            return self.store.list_qualifying_for_user(
                user_id,
                test_id=parse_id(test_id, "test_id") if test_id is not None else None,
            )

    def get_result_by_id(
        self, result_id: Any, requester_id: str, requester_role: Role
    ) -> TestResult:
        """
        Raises:
            ServiceError: INVALID_ID, NOT_FOUND or ACCESS_DENIED
        """
        with handle_db_error(self.db, "fetch test result"):
            return self._get_visible(result_id, requester_id, requester_role)

    # =========================================================================
    # Updates and lifecycle
    # =========================================================================

    def update_result(
        self,
        result_id: Any,
        payload: Mapping[str, Any],
        requester_id: str,
        requester_role: Role,
    ) -> TestResult:
        """Update non-critical fields; protected fields are silently ignored."""
        with handle_db_error(self.db, "update test result"):
            result = self._get_visible(result_id, requester_id, requester_role)
            for field, value in filter_update_payload(payload).items():
                setattr(result, field, value)
            return self.store.save(result)

    def update_status(
        self,
        result_id: Any,
        new_status: Any,
        requester_id: str,
        requester_role: Role,
    ) -> TestResult:
        """
        Move a result through its lifecycle.

        Raises:
            ServiceError: VALIDATION_ERROR, ACCESS_DENIED or INVALID_STATUS_TRANSITION
        """
        with handle_db_error(self.db, "update test result status"):
            result = self._get_or_404(result_id)
            previous = ResultStatus(result.status)
            target = check_status_transition(
                result, new_status, requester_id, requester_role
            )
            apply_status(result, target)
            result = self.store.save(result)

        logger.info(
            f"Test result {result.id} status {previous.value} -> {target.value} "
            f"by user {requester_id}"
        )
        return result

    def soft_delete(
        self, result_id: Any, requester_id: str, requester_role: Role
    ) -> TestResult:
        """Mark a result deleted (owner or admin)."""
        return self.update_status(
            result_id, ResultStatus.DELETED, requester_id, requester_role
        )

    def restore(self, result_id: Any) -> TestResult:
        """Bring a soft-deleted result back to active. Callers must be admins."""
        with handle_db_error(self.db, "restore test result"):
            result = self._get_or_404(result_id)
            if result.status != ResultStatus.DELETED:
                raise_invalid_transition(
                    ErrorMessages.invalid_transition(
                        ResultStatus(result.status).value, ResultStatus.ACTIVE.value
                    )
                )
            apply_status(result, ResultStatus.ACTIVE)
            result = self.store.save(result)

        logger.info(f"Restored test result {result.id}")
        return result

    def hard_delete(self, result_id: Any) -> Dict[str, Any]:
        """
        Permanently remove a result. Callers must be admins.

        Returns:
            The serialized document as it was before removal
        """
        with handle_db_error(self.db, "delete test result"):
            result = self._get_or_404(result_id)
            removed = serialize_result(result)
            self.store.delete(result)

        logger.info(f"Permanently deleted test result {removed['id']}")
        return removed

    # =========================================================================
    # Telemetry
    # =========================================================================

    def _get_for_telemetry(
        self,
        result_id: Any,
        requester_id: Optional[str],
        requester_role: Role,
    ) -> TestResult:
        if requester_id is None and requester_role is None:
            return self._get_or_404(result_id)
        return self._get_visible(result_id, requester_id, requester_role)

    def append_behavior(
        self,
        result_id: Any,
        event: Mapping[str, Any],
        requester_id: Optional[str] = None,
        requester_role: Role = None,
    ) -> TestResult:
        """
        Append one behaviour event; earlier events are never replaced.

        When a requester is given the visibility rule applies; internal
        callers may omit it.
        """
        event_type = event.get("event_type")
        if not isinstance(event_type, str) or not event_type.strip():
            raise_validation_error(ErrorMessages.EVENT_TYPE_REQUIRED)

        entry = {
            "event_type": event_type,
            "at": _isoformat(event.get("at") or utc_now()),
            "payload": event.get("payload"),
        }
        with handle_db_error(self.db, "append behavior event"):
            result = self._get_for_telemetry(result_id, requester_id, requester_role)
            # Reassign so the JSON column is flagged dirty
            result.behaviors = [*(result.behaviors or []), entry]
            return self.store.save(result)

    def start_session_meta(
        self,
        result_id: Any,
        meta: Mapping[str, Any],
        requester_id: Optional[str] = None,
        requester_role: Role = None,
    ) -> TestResult:
        """Record when and from which client the attempt started."""
        user_agent = meta.get("user_agent")
        if user_agent is not None and not isinstance(user_agent, str):
            raise_validation_error(ErrorMessages.USER_AGENT_REQUIRED)

        with handle_db_error(self.db, "start session metadata"):
            result = self._get_for_telemetry(result_id, requester_id, requester_role)
            result.session = {
                **(result.session or {}),
                "started_at": _isoformat(meta.get("started_at") or utc_now()),
                "user_agent": user_agent,
            }
            return self.store.save(result)

    def end_session_meta(
        self,
        result_id: Any,
        meta: Mapping[str, Any],
        requester_id: Optional[str] = None,
        requester_role: Role = None,
    ) -> TestResult:
        """Record when the attempt ended and how long the client measured it."""
        duration_ms = meta.get("duration_ms")
        if duration_ms is not None and (
            isinstance(duration_ms, bool)
            or not isinstance(duration_ms, int)
            or duration_ms < 0
        ):
            raise_validation_error(ErrorMessages.SESSION_DURATION_INVALID)

        with handle_db_error(self.db, "end session metadata"):
            result = self._get_for_telemetry(result_id, requester_id, requester_role)
            result.session = {
                **(result.session or {}),
                "ended_at": _isoformat(meta.get("ended_at") or utc_now()),
                "duration_ms": duration_ms,
            }
            return self.store.save(result)

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_user_statistics(self, user_id: Any) -> Dict[str, Any]:
        """
        Aggregate a user's active results.

        Returns:
            Totals, averages, breakdowns by test type and difficulty, and the
            most recent results summarized
        """
        user_id = parse_id(user_id, "user_id")
        with handle_db_error(self.db, "compute user statistics"):
            results = self.store.list_active_for_user(user_id)
        return summarize_results(results)


def _breakdown(results: List[TestResult], key: str) -> Dict[str, Dict[str, Any]]:
    groups: Dict[str, List[int]] = defaultdict(list)
    for result in results:
        groups[(result.test_snapshot or {}).get(key) or "unknown"].append(
            result.percentage
        )
    return {
        name: {
            "count": len(percentages),
            "average_percentage": round(sum(percentages) / len(percentages), 2),
        }
        for name, percentages in sorted(groups.items())
    }


def summarize_results(results: List[TestResult]) -> Dict[str, Any]:
    """Statistics over results already ordered newest first."""
    total_tests = len(results)
    if total_tests == 0:
        return {
            "total_tests": 0,
            "total_questions": 0,
            "total_correct": 0,
            "average_percentage": 0,
            "best_percentage": 0,
            "total_duration_ms": 0,
            "by_test_type": {},
            "by_difficulty": {},
            "recent_results": [],
        }

    return {
        "total_tests": total_tests,
        "total_questions": sum(r.total_questions for r in results),
        "total_correct": sum(r.correct_count for r in results),
        "average_percentage": round(
            sum(r.percentage for r in results) / total_tests, 2
        ),
        "best_percentage": max(r.percentage for r in results),
        "total_duration_ms": sum(r.duration_ms or 0 for r in results),
        "by_test_type": _breakdown(results, "test_type"),
        "by_difficulty": _breakdown(results, "difficulty"),
        "recent_results": [
            {
                "id": r.id,
                "test_id": r.test_id,
                "test_title": (r.test_snapshot or {}).get("test_title"),
                "test_type": (r.test_snapshot or {}).get("test_type"),
                "difficulty": (r.test_snapshot or {}).get("difficulty"),
                "percentage": r.percentage,
                "correct_count": r.correct_count,
                "total_questions": r.total_questions,
                "duration_ms": r.duration_ms,
                "created_at": r.created_at,
            }
            for r in results[:RECENT_RESULTS_LIMIT]
        ],
    }


def serialize_result(result: TestResult) -> Dict[str, Any]:
    """Plain-dict view of a result, matching ResultResponse."""
    return {
        "id": result.id,
        "test_id": result.test_id,
        "test_snapshot": result.test_snapshot,
        "user_id": result.user_id,
        "answers": result.answers,
        "total_questions": result.total_questions,
        "correct_count": result.correct_count,
        "percentage": result.percentage,
        "duration_ms": result.duration_ms,
        "start_time": result.start_time,
        "end_time": result.end_time,
        "device_info": result.device_info,
        "ip_address": result.ip_address,
        "status": ResultStatus(result.status).value,
        "deleted_at": result.deleted_at,
        "behaviors": result.behaviors or [],
        "session": result.session or {},
        "created_at": result.created_at,
    }
