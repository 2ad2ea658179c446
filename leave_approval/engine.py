"""
Leave-request lifecycle engine.

Owns the ledger and is the only place requests are created or decided.

Architectural role
------------------
- submit(): validates a draft and appends exactly one record
- decide(): applies a teacher- or admin-stage decision to one record
- views: read-only filters used by the role dashboards

Guarantees
----------
- validation happens before any mutation; a failed call leaves the ledger untouched
- each call holds one lock for validate -> mutate -> persist
- a teacher decision re-opens the admin stage; only a teacher rejection
  clears an admin approval on the same request
"""

import logging
import threading
import uuid

from leave_approval.dates import days_between_inclusive, parse_date
from leave_approval.directory import Directory
from leave_approval.draft import LeaveDraft
from leave_approval.errors import Forbidden, NotFound, ValidationFailed
from leave_approval.models import (
    Action,
    LeaveRequest,
    Principal,
    ReasonKind,
    Role,
    Stage,
    Status,
    StudentRequest,
    TeacherRequest,
    ledger_adapter,
)
from leave_approval.observability import trace_span
from leave_approval.store import Store, StoreKey

logger = logging.getLogger(__name__)


class RequestEngine:
    """
    Request ledger with role-gated submission and approval.

    When a store is given the ledger is saved after every successful
    mutation, and only then does the in-memory ledger change.
    """

    def __init__(
        self,
        directory: Directory,
        store: Store | None = None,
        ledger: list[LeaveRequest] | None = None,
    ):
        self.directory = directory
        self.store = store
        self._ledger: list[LeaveRequest] = list(ledger or [])
        self._lock = threading.RLock()

    @classmethod
    def from_store(cls, directory: Directory, store: Store) -> "RequestEngine":
        """Restore the ledger saved in the store's ledger slot."""
        payload = store.load(StoreKey.LEDGER) or []
        ledger = ledger_adapter.validate_python(payload)
        logger.info(f"Loaded {len(ledger)} leave requests from store")
        return cls(directory, store=store, ledger=ledger)

    def __len__(self) -> int:
        return len(self._ledger)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, principal: Principal, draft: LeaveDraft) -> LeaveRequest | ValidationFailed | Forbidden:
        """
        Validate a draft and append the new request to the ledger.

        Checks run in order and stop at the first failure:
        1. "other" reason needs non-blank free text
        2. reason, dates and (for students) the teacher are filled in
        3. both dates parse and end is not before start
        4. the chosen teacher is a registered teacher

        Admins review leave but cannot request it; they get Forbidden.

        Raises:
            ValueError: if no principal is given
        """
        if principal is None:
            raise ValueError("submit() requires an authenticated principal")

        with self._lock, trace_span("submit", requester=principal.username, role=principal.role.value):
            if principal.role is Role.ADMIN:
                logger.warning(f"Leave submission by admin {principal.username} refused")
                return Forbidden("Admins cannot submit leave requests.")

            result = self._build_request(principal, draft)
            if isinstance(result, ValidationFailed):
                logger.info(f"Rejected submission from {principal.username}: {result.message}")
                return result

            self._commit([*self._ledger, result])
            logger.info(
                f"Leave request {result.id} submitted by {principal.username} "
                f"({result.number_of_days} days)"
            )
            return result

    def _build_request(self, principal: Principal, draft: LeaveDraft) -> LeaveRequest | ValidationFailed:
        kind = draft.reason_kind()
        if kind is ReasonKind.OTHER and not draft.resolved_reason():
            return ValidationFailed('Please specify the "Other Reason".')
        if draft.reason and kind is None:
            return ValidationFailed(f"Unknown leave reason: {draft.reason}")

        missing = draft.missing_fields(principal.role)
        if missing:
            return ValidationFailed(
                "Please fill in all required leave request fields: " + ", ".join(missing)
            )

        start = parse_date(draft.start_date)
        end = parse_date(draft.end_date)
        if start is None or end is None:
            return ValidationFailed("Invalid date format. Please use YYYY-MM-DD.")
        if days_between_inclusive(start, end) <= 0:
            return ValidationFailed("End date must be after or on the start date.")

        fields = {
            "id": self._new_id(),
            "requester": principal.username,
            "reason": draft.resolved_reason(),
            "start_date": start,
            "end_date": end,
        }

        if principal.role is Role.STUDENT:
            teachers = {name.casefold(): name for name in self.directory.list_users_by_role(Role.TEACHER)}
            target = teachers.get(draft.teacher.strip().casefold())
            if target is None:
                return ValidationFailed(f"{draft.teacher} is not a registered teacher.")
            return StudentRequest(teacher_target=target, **fields)
        elif principal.role is Role.TEACHER:
            return TeacherRequest(**fields)
        else:
            raise ValueError(f"Unhandled role: {principal.role}")

    def _new_id(self) -> str:
        taken = {r.id for r in self._ledger}
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in taken:
                return candidate

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def decide(
        self,
        actor: Principal,
        request_id: str,
        action: Action | str,
        stage: Stage | str,
    ) -> LeaveRequest | Forbidden | NotFound:
        """
        Apply an approve/reject decision at the teacher or admin stage.

        Any state can be re-decided; the new decision overwrites the old one.

        Returns:
            The updated request, Forbidden on a role/ownership/eligibility
            mismatch, or NotFound for an unknown id.

        Raises:
            ValueError: if no actor is given or action/stage are not recognised
        """
        if actor is None:
            raise ValueError("decide() requires an authenticated principal")
        action = Action(action)
        stage = Stage(stage)

        with self._lock, trace_span(
            "decide",
            actor=actor.username,
            request=request_id,
            action=action.value,
            stage=stage.value,
        ):
            if stage is Stage.TEACHER and actor.role is not Role.TEACHER:
                return self._deny(actor, request_id, "Only teachers can decide at the teacher stage.")
            if stage is Stage.ADMIN and actor.role is not Role.ADMIN:
                return self._deny(actor, request_id, "Only admins can decide at the admin stage.")

            index = self._index_of(request_id)
            if index is None:
                logger.info(f"Decision on unknown leave request {request_id} by {actor.username}")
                return NotFound(f"Leave request {request_id} not found.")

            current = self._ledger[index]
            approve = action is Action.APPROVE

            if stage is Stage.TEACHER:
                if not isinstance(current, StudentRequest):
                    return self._deny(actor, request_id, "Only student requests have a teacher stage.")
                if current.teacher_target.casefold() != actor.username.casefold():
                    return self._deny(actor, request_id, "This leave request is addressed to another teacher.")
                update = {"teacher_approved": approve, "last_stage": Stage.TEACHER}
                if not approve:
                    # Cascade: admin approval never outlives a teacher rejection
                    update["admin_approved"] = False
                updated = current.model_copy(update=update)
            else:
                if not current.teacher_approved:
                    return self._deny(actor, request_id, "This leave request has not been approved by a teacher.")
                updated = current.model_copy(update={"admin_approved": approve, "last_stage": Stage.ADMIN})

            ledger = list(self._ledger)
            ledger[index] = updated
            self._commit(ledger)

            logger.info(
                f"Leave request {request_id}: {action.value} at {stage.value} stage "
                f"by {actor.username}: {updated.status.value}"
            )
            return updated

    def _deny(self, actor: Principal, request_id: str, message: str) -> Forbidden:
        logger.warning(f"Forbidden decision on {request_id} by {actor.username} ({actor.role.value}): {message}")
        return Forbidden(message)

    def _index_of(self, request_id: str) -> int | None:
        for i, record in enumerate(self._ledger):
            if record.id == request_id:
                return i
        return None

    def _commit(self, ledger: list[LeaveRequest]) -> None:
        """Persist first, then swap, so a store failure leaves memory unchanged."""
        if self.store is not None:
            self.store.save(StoreKey.LEDGER, ledger_adapter.dump_python(ledger, mode="json"))
        self._ledger = ledger

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get(self, request_id: str) -> LeaveRequest | NotFound:
        index = self._index_of(request_id)
        if index is None:
            return NotFound(f"Leave request {request_id} not found.")
        return self._ledger[index]

    def my_requests(self, username: str) -> list[LeaveRequest]:
        key = username.casefold()
        return [r for r in self._ledger if r.requester.casefold() == key]

    def pending_for_teacher(self, teacher_username: str) -> list[LeaveRequest]:
        key = teacher_username.casefold()
        return [
            r
            for r in self._ledger
            if isinstance(r, StudentRequest)
            and r.status is Status.PENDING
            and r.teacher_target.casefold() == key
        ]

    def pending_for_admin(self) -> list[LeaveRequest]:
        return [r for r in self._ledger if r.awaiting_admin()]

    def all(self, actor: Principal) -> list[LeaveRequest] | Forbidden:
        """Full ledger in submission order; admins only."""
        if actor is None:
            raise ValueError("all() requires an authenticated principal")
        if actor.role is not Role.ADMIN:
            return Forbidden("Only admins can view all leave requests.")
        return list(self._ledger)
