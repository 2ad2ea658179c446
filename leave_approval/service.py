"""
Session-level facade over the directory, the engine and the store.

Mirrors a single-user client: one logged-in principal at a time, kept in
the store's session slot so it survives restarts.
"""

import logging
from typing import Any

from leave_approval.directory import Directory
from leave_approval.draft import LeaveDraft
from leave_approval.engine import RequestEngine
from leave_approval.errors import AuthError, Forbidden, LeaveError, NotFound, ValidationFailed
from leave_approval.models import Action, LeaveRequest, Principal, Role, Stage
from leave_approval.store import InMemoryStore, Store, StoreKey

logger = logging.getLogger(__name__)


class LeaveService:
    """Registration, login/logout and role-gated leave operations."""

    def __init__(
        self,
        directory: Directory | None = None,
        store: Store | None = None,
        engine: RequestEngine | None = None,
        session: Principal | None = None,
    ):
        self.store = store if store is not None else InMemoryStore()
        self.directory = directory if directory is not None else Directory()
        self.engine = engine if engine is not None else RequestEngine(self.directory, store=self.store)
        self._session = session

    @classmethod
    def from_store(cls, store: Store, **directory_kwargs) -> "LeaveService":
        """Restore directory, ledger and logged-in principal from the store."""
        directory = Directory.from_dump(store.load(StoreKey.DIRECTORY), **directory_kwargs)
        engine = RequestEngine.from_store(directory, store)

        session = None
        payload = store.load(StoreKey.SESSION)
        if payload:
            saved = Principal.model_validate(payload)
            # Drop a session whose user no longer exists
            session = directory.get(saved.username)
            if session is None:
                logger.warning(f"Discarding session for unknown user {saved.username}")
                store.save(StoreKey.SESSION, None)

        return cls(directory=directory, store=store, engine=engine, session=session)

    # ------------------------------------------------------------------
    # Accounts and session
    # ------------------------------------------------------------------

    def register(self, username: str, password: str, role: Role | str) -> Principal | ValidationFailed:
        result = self.directory.register(username, password, role)
        if not isinstance(result, LeaveError):
            self.store.save(StoreKey.DIRECTORY, self.directory.dump())
        return result

    def login(self, username: str, password: str) -> Principal | AuthError:
        result = self.directory.authenticate(username, password)
        if isinstance(result, AuthError):
            return result

        self._session = result
        self.store.save(StoreKey.SESSION, result.model_dump(mode="json"))
        logger.info(f"Logged in as {result.username} ({result.role.value})")
        return result

    def logout(self) -> None:
        if self._session is not None:
            logger.info(f"Logged out {self._session.username}")
        self._session = None
        self.store.save(StoreKey.SESSION, None)

    def current_user(self) -> Principal | None:
        return self._session

    def teachers(self) -> list[str]:
        """Usernames offered in the teacher selection of the student form."""
        return sorted(self.directory.list_users_by_role(Role.TEACHER), key=str.casefold)

    # ------------------------------------------------------------------
    # Leave operations for the logged-in principal
    # ------------------------------------------------------------------

    def submit(self, draft: LeaveDraft) -> LeaveRequest | ValidationFailed | Forbidden | AuthError:
        if self._session is None:
            return AuthError("Please log in first.")
        return self.engine.submit(self._session, draft)

    def decide(
        self, request_id: str, action: Action | str, stage: Stage | str
    ) -> LeaveRequest | Forbidden | NotFound | AuthError:
        if self._session is None:
            return AuthError("Please log in first.")
        return self.engine.decide(self._session, request_id, action, stage)

    def dashboard(self) -> dict[str, Any] | AuthError:
        """Views shown to the logged-in principal, keyed by panel name."""
        user = self._session
        if user is None:
            return AuthError("Please log in first.")

        if user.role is Role.STUDENT:
            return {"my_requests": self.engine.my_requests(user.username)}
        elif user.role is Role.TEACHER:
            return {
                "my_requests": self.engine.my_requests(user.username),
                "pending_for_teacher": self.engine.pending_for_teacher(user.username),
            }
        elif user.role is Role.ADMIN:
            return {
                "pending_for_admin": self.engine.pending_for_admin(),
                "all": self.engine.all(user),
            }
        else:
            raise ValueError(f"Unhandled role: {user.role}")
