"""
Status lifecycle and access rules for test results.

States: draft, active, deleted. Allowed transitions:

    draft   -> active    owner or admin
    draft   -> deleted   owner or admin (soft delete)
    active  -> deleted   owner or admin (soft delete)
    deleted -> active    admin only (restore)

Hard delete is not a status; it is admin-only and handled by the service.
Everything else is rejected.

Reads follow a single visibility rule: admins see every result, everyone
else sees only their own.
"""
import logging
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from quizhub.core.datetime_utils import utc_now
from quizhub.core.error_responses import (
    ErrorMessages,
    raise_forbidden,
    raise_invalid_transition,
    raise_validation_error,
)
from quizhub.models.models import ResultStatus, TestResult, UserRole

logger = logging.getLogger(__name__)

# (from, to) -> whether the owner may perform it. Admins may perform all.
_TRANSITIONS: Dict[Tuple[ResultStatus, ResultStatus], bool] = {
    (ResultStatus.DRAFT, ResultStatus.ACTIVE): True,
    (ResultStatus.DRAFT, ResultStatus.DELETED): True,
    (ResultStatus.ACTIVE, ResultStatus.DELETED): True,
    (ResultStatus.DELETED, ResultStatus.DELETED): True,
    (ResultStatus.DELETED, ResultStatus.ACTIVE): False,
}

# Fields that can only change through creation, status transitions or
# the telemetry operations. Silently dropped from update payloads.
BLOCKED_UPDATE_FIELDS: FrozenSet[str] = frozenset(
    {
        "id",
        "test_id",
        "test_snapshot",
        "user_id",
        "answers",
        "total_questions",
        "correct_count",
        "percentage",
        "duration_ms",
        "status",
        "deleted_at",
        "behaviors",
        "session",
        "created_at",
    }
)

UPDATABLE_FIELDS: FrozenSet[str] = frozenset(
    {"start_time", "end_time", "device_info", "ip_address"}
)


def is_admin(role: Union[UserRole, str, None]) -> bool:
    """Collapse the role set to admin vs regular user."""
    return role == UserRole.ADMIN or role == UserRole.ADMIN.value


def parse_status(value: Any) -> ResultStatus:
    """
    Parse a requested status value.

    Raises:
        ServiceError: VALIDATION_ERROR if the value is not a known status
    """
    if isinstance(value, ResultStatus):
        return value
    try:
        return ResultStatus(value)
    except ValueError:
        raise_validation_error(ErrorMessages.INVALID_STATUS)


def resolve_initial_status(
    requested: Any, role: Union[UserRole, str, None]
) -> ResultStatus:
    """
    Decide the status a new result is stored with.

    Only admins can create a result directly as active; any other caller's
    request for active is downgraded to draft without an error.

    Raises:
        ServiceError: VALIDATION_ERROR for unknown statuses or 'deleted'
    """
    if requested is None:
        return ResultStatus.DRAFT

    status = parse_status(requested)
    if status == ResultStatus.DELETED:
        raise_validation_error(ErrorMessages.INVALID_CREATION_STATUS)
    if status == ResultStatus.ACTIVE and not is_admin(role):
        logger.info("Downgrading requested 'active' status to 'draft' for non-admin")
        return ResultStatus.DRAFT
    return status


def can_view(
    result: TestResult, requester_id: Optional[str], role: Union[UserRole, str, None]
) -> bool:
    """Whether the requester may read (and lightly modify) the result."""
    return is_admin(role) or (
        requester_id is not None and result.user_id == requester_id
    )


def ensure_can_view(
    result: TestResult, requester_id: Optional[str], role: Union[UserRole, str, None]
) -> None:
    """
    Raises:
        ServiceError: ACCESS_DENIED if the requester is neither owner nor admin
    """
    if not can_view(result, requester_id, role):
        raise_forbidden(ErrorMessages.RESULT_ACCESS_DENIED)


def check_status_transition(
    result: TestResult,
    new_status: Any,
    requester_id: Optional[str],
    role: Union[UserRole, str, None],
) -> ResultStatus:
    """
    Validate a status change against the lifecycle and the caller's rights.

    Returns:
        The parsed target status

    Raises:
        ServiceError: VALIDATION_ERROR for unknown statuses, ACCESS_DENIED for
            callers who may not make the change, INVALID_STATUS_TRANSITION for
            transitions outside the lifecycle
    """
    target = parse_status(new_status)
    admin = is_admin(role)
    owner = requester_id is not None and result.user_id == requester_id

    if not (admin or owner):
        raise_forbidden(ErrorMessages.RESULT_MODIFY_DENIED)

    current = ResultStatus(result.status)
    owner_allowed = _TRANSITIONS.get((current, target))
    if owner_allowed is None:
        raise_invalid_transition(
            ErrorMessages.invalid_transition(current.value, target.value)
        )
    if not admin and not owner_allowed:
        raise_forbidden(ErrorMessages.RESTORE_ADMIN_ONLY)

    return target


def apply_status(result: TestResult, target: ResultStatus) -> None:
    """
    Set the new status, stamping or clearing deleted_at.

    A repeat soft delete keeps the original deleted_at.
    """
    already_deleted = result.status == ResultStatus.DELETED
    result.status = target
    if target != ResultStatus.DELETED:
        result.deleted_at = None
    elif not already_deleted or result.deleted_at is None:
        result.deleted_at = utc_now()


def filter_update_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Keep only non-critical fields from an update payload.

    Blocked and unknown fields are dropped silently rather than rejected.
    """
    stripped = sorted(key for key in payload if key in BLOCKED_UPDATE_FIELDS)
    if stripped:
        logger.debug(f"Ignoring protected fields in result update: {stripped}")
    return {key: value for key, value in payload.items() if key in UPDATABLE_FIELDS}
