"""
Submission form state.

Tracks what the requester has filled in so far and recomputes the day
count whenever either date changes.
"""

from dataclasses import dataclass
from datetime import date

from leave_approval.dates import days_between_inclusive, parse_date
from leave_approval.models import ReasonKind, Role


@dataclass
class LeaveDraft:
    reason: str | None = ReasonKind.SICK.value
    other_reason: str = ""
    start_date: date | str | None = None
    end_date: date | str | None = None
    teacher: str | None = None

    def reason_kind(self) -> ReasonKind | None:
        """Selected reason, or None when nothing (or an unknown value) was selected."""
        if isinstance(self.reason, ReasonKind):
            return self.reason
        try:
            return ReasonKind((self.reason or "").strip().lower())
        except ValueError:
            return None

    def resolved_reason(self) -> str:
        """Reason as it will be stored: the enum value or the trimmed free text."""
        kind = self.reason_kind()
        if kind is None:
            return ""
        if kind is ReasonKind.OTHER:
            return (self.other_reason or "").strip()
        return kind.value

    @property
    def number_of_days(self) -> int:
        start = parse_date(self.start_date)
        end = parse_date(self.end_date)
        if start is None or end is None:
            return 0
        return days_between_inclusive(start, end)

    def missing_fields(self, role: Role) -> list[str]:
        missing = []
        if not self.resolved_reason():
            missing.append("reason")
        if not _filled(self.start_date):
            missing.append("start_date")
        if not _filled(self.end_date):
            missing.append("end_date")
        if role is Role.STUDENT and not _filled(self.teacher):
            missing.append("teacher")
        return missing


def _filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True
