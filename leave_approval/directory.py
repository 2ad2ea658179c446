"""
User directory: registration, authentication and role lookups.

Usernames are unique case-insensitively; the casing used at registration
is kept as the canonical username.
"""

import logging
import threading

from pydantic import BaseModel, ConfigDict

from leave_approval.errors import AuthError, ValidationFailed
from leave_approval.models import Principal, Role
from leave_approval.security import PASSWORD_ITERATIONS, hash_password, verify_password

logger = logging.getLogger(__name__)


class Account(BaseModel):
    """Stored credentials for one user."""

    model_config = ConfigDict(frozen=True)

    username: str
    password_hash: str
    role: Role

    def principal(self) -> Principal:
        return Principal(username=self.username, role=self.role)


class Directory:
    """In-memory account registry."""

    def __init__(self, accounts: list[Account] | None = None, hash_iterations: int = PASSWORD_ITERATIONS):
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()
        self.hash_iterations = hash_iterations
        for account in accounts or []:
            self._accounts[_key(account.username)] = account

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, username: str) -> bool:
        return _key(username) in self._accounts

    def register(self, username: str, password: str, role: Role | str) -> Principal | ValidationFailed:
        """
        Create a new account.

        Returns:
            The new principal, or ValidationFailed when a field is missing,
            the role is unknown or the username is already taken.
        """
        username = (username or "").strip()
        if not username or not password or not role:
            return ValidationFailed("Please enter username, password, and select a role.")

        try:
            role = Role(role)
        except ValueError:
            return ValidationFailed(f"Unknown role: {role}")

        password_hash = hash_password(password, self.hash_iterations)

        with self._lock:
            if _key(username) in self._accounts:
                return ValidationFailed("Username already exists. Please choose a different one.")

            account = Account(username=username, password_hash=password_hash, role=role)
            self._accounts[_key(username)] = account
        logger.info(f"Registered user {username} as {role.value}")
        return account.principal()

    def authenticate(self, username: str, password: str) -> Principal | AuthError:
        """Check credentials; the username lookup ignores case."""
        if not username or not password:
            return AuthError("Please enter both username and password.")

        account = self._accounts.get(_key(username))
        if account is None or not verify_password(password, account.password_hash):
            logger.warning(f"Failed login for {username}")
            return AuthError("Invalid username or password.")

        return account.principal()

    def get(self, username: str | None) -> Principal | None:
        if not username:
            return None
        account = self._accounts.get(_key(username))
        return account.principal() if account else None

    def list_users_by_role(self, role: Role) -> set[str]:
        role = Role(role)
        return {a.username for a in self._accounts.values() if a.role is role}

    def dump(self) -> list[dict]:
        """JSON-compatible payload for the directory store slot."""
        with self._lock:
            accounts = list(self._accounts.values())
        return [a.model_dump(mode="json") for a in accounts]

    @classmethod
    def from_dump(cls, payload: list[dict] | None, **kwargs) -> "Directory":
        return cls([Account.model_validate(item) for item in payload or []], **kwargs)


def _key(username: str) -> str:
    return username.strip().casefold()
