"""
Domain models for principals and leave requests.

A leave request is a tagged variant over the requester's role:
- StudentRequest: routed to a named teacher first, then to any admin
- TeacherRequest: teacher stage pre-satisfied, goes straight to admin review

The display status is never stored. It is derived from the approval flags
and the last stage to decide by derive_status(), so it cannot drift.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, computed_field, model_validator

from leave_approval.dates import days_between_inclusive


class Role(str, Enum):
    """Roles known to the directory."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class Stage(str, Enum):
    """Approval checkpoints."""

    TEACHER = "teacher"
    ADMIN = "admin"


class Action(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ReasonKind(str, Enum):
    """Reason selector offered on the submission form."""

    SICK = "sick"
    CASUAL = "casual"
    VACATION = "vacation"
    OTHER = "other"


class Status(str, Enum):
    """Display label of a leave request."""

    PENDING = "Pending"
    APPROVED_BY_TEACHER = "Approved by Teacher"
    REJECTED_BY_TEACHER = "Rejected by Teacher"
    APPROVED_BY_ADMIN = "Approved by Admin"
    REJECTED_BY_ADMIN = "Rejected by Admin"


ADMIN_DECIDED = frozenset({Status.APPROVED_BY_ADMIN, Status.REJECTED_BY_ADMIN})


class Principal(BaseModel):
    """An authenticated actor."""

    model_config = ConfigDict(frozen=True)

    username: str
    role: Role


def derive_status(last_stage: Stage | None, teacher_approved: bool, admin_approved: bool) -> Status:
    """
    Map the approval flags to the display label.

    The label follows the stage that decided last; a request nobody has
    decided on yet is Pending.
    """
    if last_stage is Stage.ADMIN:
        return Status.APPROVED_BY_ADMIN if admin_approved else Status.REJECTED_BY_ADMIN
    if last_stage is Stage.TEACHER:
        return Status.APPROVED_BY_TEACHER if teacher_approved else Status.REJECTED_BY_TEACHER
    return Status.PENDING


class _LeaveRequestBase(BaseModel):
    """Fields shared by both request variants."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    requester: str
    reason: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    admin_approved: bool = False
    last_stage: Stage | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self

    @computed_field
    @property
    def number_of_days(self) -> int:
        return days_between_inclusive(self.start_date, self.end_date)

    @computed_field
    @property
    def status(self) -> Status:
        return derive_status(self.last_stage, self.teacher_approved, self.admin_approved)

    @property
    def role(self) -> Role:
        return Role(self.requester_role)

    def awaiting_admin(self) -> bool:
        """True when eligible for admin review and not yet decided by an admin."""
        return self.teacher_approved and self.status not in ADMIN_DECIDED


class StudentRequest(_LeaveRequestBase):
    """Leave requested by a student; a named teacher decides first."""

    requester_role: Literal["student"] = "student"
    teacher_target: str = Field(..., min_length=1)
    teacher_approved: bool = False


class TeacherRequest(_LeaveRequestBase):
    """Leave requested by a teacher; only the admin stage applies."""

    requester_role: Literal["teacher"] = "teacher"

    @computed_field
    @property
    def teacher_approved(self) -> bool:
        return True


LeaveRequest = Annotated[StudentRequest | TeacherRequest, Field(discriminator="requester_role")]

ledger_adapter = TypeAdapter(list[LeaveRequest])
