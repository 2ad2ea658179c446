"""
Tests for request models and status derivation.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from leave_approval.models import (
    Stage,
    Status,
    StudentRequest,
    TeacherRequest,
    derive_status,
    ledger_adapter,
)


class TestDeriveStatus:
    """The label follows the stage that decided last."""

    @pytest.mark.parametrize(
        "last_stage,teacher_approved,admin_approved,expected",
        [
            (None, False, False, Status.PENDING),
            (None, True, False, Status.PENDING),
            (Stage.TEACHER, True, False, Status.APPROVED_BY_TEACHER),
            (Stage.TEACHER, True, True, Status.APPROVED_BY_TEACHER),
            (Stage.TEACHER, False, False, Status.REJECTED_BY_TEACHER),
            (Stage.ADMIN, True, True, Status.APPROVED_BY_ADMIN),
            (Stage.ADMIN, True, False, Status.REJECTED_BY_ADMIN),
        ],
    )
    def test_labels(self, last_stage, teacher_approved, admin_approved, expected):
        assert derive_status(last_stage, teacher_approved, admin_approved) is expected


class TestRequestVariants:
    def make(self, cls, **extra):
        return cls(
            requester="x", reason="sick", start_date=date(2024, 3, 1), end_date=date(2024, 3, 2), **extra
        )

    def test_teacher_request_rejects_other_roles(self):
        with pytest.raises(ValidationError):
            self.make(TeacherRequest, requester_role="admin")

    def test_reversed_range_rejected(self):
        with pytest.raises(ValidationError):
            TeacherRequest(requester="x", reason="sick", start_date=date(2024, 3, 2), end_date=date(2024, 3, 1))

    def test_teacher_request_defaults(self):
        request = self.make(TeacherRequest)

        assert request.teacher_approved is True
        assert request.admin_approved is False
        assert request.status is Status.PENDING
        assert request.awaiting_admin()

    def test_student_request_not_awaiting_admin_until_approved(self):
        request = self.make(StudentRequest, teacher_target="bob")
        assert not request.awaiting_admin()

        approved = request.model_copy(update={"teacher_approved": True, "last_stage": Stage.TEACHER})
        assert approved.awaiting_admin()

    def test_ledger_payload_dispatches_on_role(self):
        student = self.make(StudentRequest, teacher_target="bob")
        teacher = self.make(TeacherRequest)

        payload = ledger_adapter.dump_python([student, teacher], mode="json")
        assert payload[0]["status"] == "Pending"
        assert [type(r) for r in ledger_adapter.validate_python(payload)] == [StudentRequest, TeacherRequest]
