import sys
import unittest
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# Ensure `backend/` is on sys.path so `import app...` works
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))

from app.db.db import Base  # noqa: E402
from app.dependencies.db import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user_profile import UserProfile  # noqa: E402
from app.services.user_service import verify_password  # noqa: E402


class UsersApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def register(self, **overrides):
        payload = {
            "username": "jdoe",
            "password": "correct horse battery",
            "name": "Jo Doe",
            "email": "Jo@Example.com",
        }
        payload.update(overrides)
        return self.client.post("/api/v1/users", json=payload)

    def test_register(self):
        res = self.register()
        self.assertEqual(res.status_code, 201)

        user = res.json()["user"]
        self.assertEqual(user["id"], "u_001")
        self.assertEqual(user["email"], "jo@example.com")
        self.assertNotIn("password_hash", user)

        with self.Session() as db:
            stored = db.query(UserProfile).filter_by(username="jdoe").one()
            self.assertTrue(stored.password_hash.startswith("$pbkdf2-sha256$"))
            self.assertTrue(verify_password("correct horse battery", stored.password_hash))

    def test_duplicates_conflict(self):
        self.register()

        same_name = self.register(email="other@example.com")
        self.assertEqual(same_name.status_code, 409)
        self.assertEqual(same_name.json()["detail"]["error"]["details"], {"field": "username"})

        same_email = self.register(username="jdoe2", email="JO@example.com")
        self.assertEqual(same_email.status_code, 409)
        self.assertEqual(same_email.json()["detail"]["error"]["details"], {"field": "email"})

    def test_blank_email_is_stored_as_null(self):
        self.assertEqual(self.register(username="a_user", email="  ").status_code, 201)
        self.assertEqual(self.register(username="b_user", email="").status_code, 201)

    def test_invalid_payload(self):
        short_password = self.register(password="short")
        self.assertEqual(short_password.status_code, 400)

        spaced = self.register(username="j doe")
        self.assertEqual(spaced.status_code, 400)
        self.assertEqual(spaced.json()["error"]["code"], "VALIDATION_ERROR")

    def test_login(self):
        self.register()

        ok = self.client.post("/api/v1/users/login", json={"username": "jdoe", "password": "correct horse battery"})
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["user"]["id"], "u_001")

        bad = self.client.post("/api/v1/users/login", json={"username": "jdoe", "password": "wrong password"})
        self.assertEqual(bad.status_code, 401)
        self.assertEqual(bad.json()["detail"]["error"]["code"], "UNAUTHORIZED")

        unknown = self.client.post("/api/v1/users/login", json={"username": "nobody", "password": "whatever1"})
        self.assertEqual(unknown.status_code, 401)


if __name__ == "__main__":
    unittest.main()
