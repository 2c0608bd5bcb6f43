"""
Shared pytest fixtures.

Uses a SQLite file database so no Postgres is required for tests. Every
test gets its own freshly registered user, so rows never bleed between
tests. The LLM is replaced by FakeLLM through the `get_llm` dependency.
"""
import uuid
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import LLMError
from app.core.rate_limit import limiter
from app.core.security import hash_password
from app.db.base import Base, get_db
from app.main import app
from app.models.user import User
from app.services.llm import LLMResponse, get_llm

SQLITE_URL = "sqlite:///./test_study_coach.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "correct-horse-battery"


class FakeLLM:
    """Stands in for AnthropicLLM; records every call."""

    def __init__(self):
        self.configured = True
        self.text = "Start with five minutes of review."
        self.json_payload: Any = {}
        self.error: Optional[Exception] = None
        self.calls: list[dict] = []

    def chat(self, messages, max_tokens=1024, temperature=0.7) -> LLMResponse:
        self.calls.append({"kind": "chat", "messages": messages,
                           "max_tokens": max_tokens, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.text)

    def chat_json(self, messages, max_tokens=1024, temperature=0.7) -> Any:
        self.calls.append({"kind": "json", "messages": messages,
                           "max_tokens": max_tokens, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.json_payload

    def fail(self, message: str = "provider down") -> None:
        self.error = LLMError(message)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.store.clear()
    yield
    limiter.store.clear()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def fake_llm():
    return FakeLLM()


@pytest.fixture()
def client(fake_llm):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_llm] = lambda: fake_llm
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def unique_email() -> str:
    return f"student-{uuid.uuid4().hex[:12]}@example.com"


@pytest.fixture()
def register(client):
    """Factory: register a user and return its auth headers."""
    def _register(name: Optional[str] = "Aki") -> dict[str, str]:
        email = unique_email()
        r = client.post("/auth/register", json={"email": email, "password": PASSWORD, "name": name})
        assert r.status_code == 201, r.text
        r = client.post("/auth/token", json={"email": email, "password": PASSWORD})
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['accessToken']}"}
    return _register


@pytest.fixture()
def auth(register):
    return register()


@pytest.fixture()
def user(db):
    """A user row for service-level tests that bypass HTTP."""
    u = User(email=unique_email(), name="Aki", password_hash=hash_password(PASSWORD))
    db.add(u)
    db.commit()
    db.refresh(u)
    return u
