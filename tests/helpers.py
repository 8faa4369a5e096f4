"""
Shared test fixtures: in-memory store and bearer tokens.
"""
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from app.courses.database import Store

TEST_SECRET = "test-secret"

INSTRUCTOR_ID = 1
OTHER_INSTRUCTOR_ID = 2
STUDENT_ID = 10


def make_store():
    """Fresh in-memory database; mongomock has no replica set, so transactions stay off"""
    return Store(AsyncMongoMockClient()["testdb"], use_transactions=False)


def make_token(user_id, role):
    return jwt.encode({"sub": str(user_id), "role": role}, TEST_SECRET, algorithm="HS256")


def auth_header(user_id, role):
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}
