"""
Tests for result status lifecycle and access rules.
"""
import pytest

from quizhub.core.error_responses import ErrorKind, ServiceError
from quizhub.core.result_lifecycle import (
    apply_status,
    can_view,
    check_status_transition,
    ensure_can_view,
    filter_update_payload,
    is_admin,
    resolve_initial_status,
)
from quizhub.models import models
from quizhub.models.models import ResultStatus, UserRole

OWNER = "owner-id"
STRANGER = "stranger-id"
ADMIN = "admin-id"


def _result(status: ResultStatus = ResultStatus.DRAFT):
    return models.TestResult(user_id=OWNER, status=status)


def _kind(func, *args) -> ErrorKind:
    with pytest.raises(ServiceError) as exc_info:
        func(*args)
    return exc_info.value.kind


class TestIsAdmin:
    def test_accepts_enum_and_value(self):
        assert is_admin(UserRole.ADMIN)
        assert is_admin("admin")

    @pytest.mark.parametrize("role", [UserRole.TEACHER, UserRole.STUDENT, None, "root"])
    def test_everything_else_is_regular(self, role):
        assert not is_admin(role)


class TestResolveInitialStatus:
    """Tests for the creation role gate."""

    def test_default_is_draft(self):
        assert resolve_initial_status(None, UserRole.STUDENT) == ResultStatus.DRAFT

    def test_non_admin_active_downgraded_to_draft(self):
        assert resolve_initial_status("active", UserRole.STUDENT) == ResultStatus.DRAFT
        assert resolve_initial_status("active", UserRole.TEACHER) == ResultStatus.DRAFT

    def test_admin_may_create_active(self):
        assert resolve_initial_status("active", UserRole.ADMIN) == ResultStatus.ACTIVE

    def test_deleted_rejected_for_everyone(self):
        for role in (UserRole.ADMIN, UserRole.STUDENT):
            assert (
                _kind(resolve_initial_status, "deleted", role)
                == ErrorKind.VALIDATION_ERROR
            )

    def test_unknown_status_rejected(self):
        assert (
            _kind(resolve_initial_status, "published", UserRole.ADMIN)
            == ErrorKind.VALIDATION_ERROR
        )


class TestVisibility:
    def test_owner_and_admin_can_view(self):
        result = _result()

        assert can_view(result, OWNER, UserRole.STUDENT)
        assert can_view(result, ADMIN, UserRole.ADMIN)

    def test_other_user_denied(self):
        result = _result()

        assert not can_view(result, STRANGER, UserRole.TEACHER)
        assert (
            _kind(ensure_can_view, result, STRANGER, UserRole.STUDENT)
            == ErrorKind.ACCESS_DENIED
        )

    def test_anonymous_denied(self):
        assert not can_view(_result(), None, None)


class TestCheckStatusTransition:
    """Tests for the transition table and who may use it."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (ResultStatus.DRAFT, ResultStatus.ACTIVE),
            (ResultStatus.DRAFT, ResultStatus.DELETED),
            (ResultStatus.ACTIVE, ResultStatus.DELETED),
            (ResultStatus.DELETED, ResultStatus.DELETED),
        ],
    )
    def test_owner_allowed_transitions(self, current, target):
        assert (
            check_status_transition(_result(current), target.value, OWNER, UserRole.STUDENT)
            == target
        )

    def test_owner_cannot_move_active_back_to_draft(self):
        assert (
            _kind(
                check_status_transition,
                _result(ResultStatus.ACTIVE),
                "draft",
                OWNER,
                UserRole.STUDENT,
            )
            == ErrorKind.INVALID_STATUS_TRANSITION
        )

    def test_only_admin_restores(self):
        deleted = _result(ResultStatus.DELETED)

        assert (
            _kind(check_status_transition, deleted, "active", OWNER, UserRole.STUDENT)
            == ErrorKind.ACCESS_DENIED
        )
        assert (
            check_status_transition(deleted, "active", ADMIN, UserRole.ADMIN)
            == ResultStatus.ACTIVE
        )

    def test_non_owner_denied_before_table_lookup(self):
        assert (
            _kind(
                check_status_transition,
                _result(ResultStatus.ACTIVE),
                "draft",
                STRANGER,
                UserRole.STUDENT,
            )
            == ErrorKind.ACCESS_DENIED
        )

    @pytest.mark.parametrize(
        "current,target",
        [
            (ResultStatus.ACTIVE, ResultStatus.DRAFT),
            (ResultStatus.DELETED, ResultStatus.DRAFT),
            (ResultStatus.ACTIVE, ResultStatus.ACTIVE),
            (ResultStatus.DRAFT, ResultStatus.DRAFT),
        ],
    )
    def test_admin_bound_by_table(self, current, target):
        assert (
            _kind(check_status_transition, _result(current), target, ADMIN, UserRole.ADMIN)
            == ErrorKind.INVALID_STATUS_TRANSITION
        )

    def test_unknown_target_rejected(self):
        assert (
            _kind(check_status_transition, _result(), "archived", OWNER, UserRole.STUDENT)
            == ErrorKind.VALIDATION_ERROR
        )


class TestApplyStatus:
    def test_soft_delete_stamps_and_restore_clears(self):
        result = _result(ResultStatus.ACTIVE)

        apply_status(result, ResultStatus.DELETED)
        assert result.status == ResultStatus.DELETED
        assert result.deleted_at is not None

        apply_status(result, ResultStatus.ACTIVE)
        assert result.deleted_at is None

    def test_repeat_soft_delete_keeps_timestamp(self):
        result = _result(ResultStatus.ACTIVE)
        apply_status(result, ResultStatus.DELETED)
        first = result.deleted_at

        apply_status(result, ResultStatus.DELETED)

        assert result.status == ResultStatus.DELETED
        assert result.deleted_at == first


class TestFilterUpdatePayload:
    def test_blocked_and_unknown_fields_dropped(self):
        payload = {
            "status": "active",
            "percentage": 100,
            "correct_count": 10,
            "answers": [],
            "user_id": STRANGER,
            "device_info": "iPad",
            "favourite_colour": "blue",
        }

        assert filter_update_payload(payload) == {"device_info": "iPad"}

    def test_non_critical_fields_kept(self):
        payload = {
            "start_time": "2024-01-01T00:00:00Z",
            "end_time": "2024-01-01T00:10:00Z",
            "ip_address": "10.0.0.1",
        }

        assert filter_update_payload(payload) == payload
