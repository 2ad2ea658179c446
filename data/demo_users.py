"""
Demo accounts for local development.
Loaded into the directory when SEED_DEMO_USERS is enabled.
"""

DEMO_USERS = [
    {"username": "alice", "password": "alice-pass", "role": "student"},
    {"username": "erin", "password": "erin-pass", "role": "student"},
    {"username": "bob", "password": "bob-pass", "role": "teacher"},
    {"username": "dave", "password": "dave-pass", "role": "teacher"},
    {"username": "carol", "password": "carol-pass", "role": "admin"},
]


def seed_directory(directory) -> int:
    """Register any demo user not already present. Returns how many were added."""
    added = 0
    for user in DEMO_USERS:
        if user["username"] in directory:
            continue
        directory.register(user["username"], user["password"], user["role"])
        added += 1
    return added
