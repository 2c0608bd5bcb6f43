"""
Tests for registration, tokens and the coaching profile.
"""
import uuid
from datetime import timedelta

from app.core.security import create_access_token, decode_access_token, hash_password, verify_password

PASSWORD = "correct-horse-battery"


def unique_email() -> str:
    return f"student-{uuid.uuid4().hex[:12]}@example.com"


class TestRegister:
    def test_register_returns_user(self, client):
        email = unique_email()
        r = client.post("/auth/register", json={"email": email.upper(), "password": PASSWORD, "name": "Mio"})
        assert r.status_code == 201
        body = r.json()
        assert body["email"] == email
        assert body["name"] == "Mio"
        assert "password" not in body and "passwordHash" not in body

    def test_duplicate_email_is_409(self, client):
        email = unique_email()
        client.post("/auth/register", json={"email": email, "password": PASSWORD})
        r = client.post("/auth/register", json={"email": email, "password": PASSWORD})
        assert r.status_code == 409
        assert r.json()["code"] == "EMAIL_ALREADY_REGISTERED"

    def test_short_password_rejected(self, client):
        r = client.post("/auth/register", json={"email": unique_email(), "password": "short"})
        assert r.status_code == 422

    def test_bad_email_rejected(self, client):
        r = client.post("/auth/register", json={"email": "not-an-email", "password": PASSWORD})
        assert r.status_code == 422


class TestToken:
    def test_wrong_password_is_401(self, client):
        email = unique_email()
        client.post("/auth/register", json={"email": email, "password": PASSWORD})
        r = client.post("/auth/token", json={"email": email, "password": "wrong-password"})
        assert r.status_code == 401
        assert r.json()["code"] == "INVALID_CREDENTIALS"

    def test_unknown_email_is_401(self, client):
        r = client.post("/auth/token", json={"email": unique_email(), "password": PASSWORD})
        assert r.status_code == 401

    def test_token_type(self, client):
        email = unique_email()
        client.post("/auth/register", json={"email": email, "password": PASSWORD})
        body = client.post("/auth/token", json={"email": email, "password": PASSWORD}).json()
        assert body["tokenType"] == "bearer"
        assert body["accessToken"]

    def test_garbage_token_is_401(self, client):
        r = client.get("/tasks", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401
        assert r.headers["www-authenticate"] == "Bearer"

    def test_expired_token_is_401(self, client, user):
        token = create_access_token(user.id, expires_delta=timedelta(seconds=-5))
        r = client.get("/tasks", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401

    def test_token_for_deleted_user_is_401(self, client):
        token = create_access_token(987654321)
        r = client.get("/tasks", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401


class TestSecurityHelpers:
    def test_password_round_trip(self):
        hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert verify_password(PASSWORD, hashed)
        assert not verify_password("nope", hashed)

    def test_malformed_hash(self):
        assert verify_password(PASSWORD, "not-a-bcrypt-hash") is False

    def test_decode(self):
        assert decode_access_token(create_access_token(42)) == 42
        assert decode_access_token("junk") is None


class TestProfile:
    def test_defaults(self, client, auth):
        r = client.get("/settings/profile", headers=auth)
        assert r.status_code == 200
        assert r.json() == {"name": "Aki", "weeklyGoal": "", "activeHours": "day", "coachTone": "gentle"}

    def test_upsert(self, client, auth):
        r = client.put("/settings/profile", json={
            "name": " Kai ", "weeklyGoal": "Finish chapter 3",
            "activeHours": "evening", "coachTone": "energetic",
        }, headers=auth)
        assert r.status_code == 200
        assert r.json() == {
            "name": "Kai", "weeklyGoal": "Finish chapter 3",
            "activeHours": "evening", "coachTone": "energetic",
        }
        r = client.put("/settings/profile", json={"weeklyGoal": "Rest"}, headers=auth)
        body = r.json()
        assert body["name"] == "Kai"
        assert body["weeklyGoal"] == "Rest"
        assert body["activeHours"] == "day"

    def test_unknown_tone_rejected(self, client, auth):
        r = client.put("/settings/profile", json={"coachTone": "harsh"}, headers=auth)
        assert r.status_code == 422
