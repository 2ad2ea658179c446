"""
Pytest configuration and fixtures.
Shared directory, engine and service setups.
"""

import pytest

from leave_approval.directory import Directory
from leave_approval.draft import LeaveDraft
from leave_approval.engine import RequestEngine
from leave_approval.store import InMemoryStore

# Keep password hashing cheap in tests
FAST_HASH_ITERATIONS = 1000


@pytest.fixture
def directory():
    """Directory with two students, two teachers and one admin."""
    d = Directory(hash_iterations=FAST_HASH_ITERATIONS)
    d.register("alice", "alice-pass", "student")
    d.register("erin", "erin-pass", "student")
    d.register("bob", "bob-pass", "teacher")
    d.register("dave", "dave-pass", "teacher")
    d.register("carol", "carol-pass", "admin")
    return d


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def engine(directory, store):
    return RequestEngine(directory, store=store)


@pytest.fixture
def alice(directory):
    return directory.get("alice")


@pytest.fixture
def erin(directory):
    return directory.get("erin")


@pytest.fixture
def bob(directory):
    return directory.get("bob")


@pytest.fixture
def dave(directory):
    return directory.get("dave")


@pytest.fixture
def carol(directory):
    return directory.get("carol")


@pytest.fixture
def student_draft():
    """Valid three-day sick leave addressed to bob."""
    return LeaveDraft(reason="sick", start_date="2024-03-01", end_date="2024-03-03", teacher="bob")


@pytest.fixture
def teacher_draft():
    return LeaveDraft(reason="vacation", start_date="2024-04-10", end_date="2024-04-12")
