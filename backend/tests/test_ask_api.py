import json
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# Ensure `backend/` is on sys.path so `import app...` works
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))

from app.config import AskConfig, RateLimitConfig  # noqa: E402
from app.db.db import Base  # noqa: E402
from app.dependencies.db import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.ai_preferences import UserAIPreferences  # noqa: E402
from app.models.ask_audit import AskAuditLog  # noqa: E402
from app.models.credit_profile import CreditProfileRecord  # noqa: E402
from app.models.user_profile import UserProfile  # noqa: E402


USER_HEADERS = {"x-user-id": "u_001"}

FULL_CALIBRATION = {
    "goal": "both",
    "carry_balance": "no",
    "knows_statement_vs_due": "yes",
    "bnpl_usage": "never",
    "confidence_level": "medium",
    "wants_edge_cases": "yes",
}

GENERATED = json.dumps({
    "summary": "Utilization is your reported balance divided by your total limit.",
    "recommended_action": "Keep reported balances low.",
    "steps": ["Find your statement balance", "Divide by your limit"],
    "mechanics": "Issuers report the statement balance.",
    "edge_cases": None,
    "warnings": None,
    "confidence": "high",
    "blocked": False,
    "block_reason": None,
})

ANSWERED_QUESTION = "What is a credit utilization ratio?"
MYTH_QUESTION = "Is 0% utilization best?"


def fake_openai(content):
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )
    return client


class AskApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        with self.Session() as db:
            db.add(UserProfile(id=1, username="u1", password_hash="x"))
            db.add(UserProfile(id=2, username="u2", password_hash="x"))
            db.commit()
            db.add(CreditProfileRecord(user_id=1, experience_level="beginner", onboarding_completed=True))
            db.commit()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

        for patcher in (
            patch.object(AskConfig, "DEFAULT_CREDITS", 5),
            patch.object(AskConfig, "AUDIT_LOG_PATH", None),
            patch.object(RateLimitConfig, "ASK_PER_MINUTE", 60),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self):
        app.dependency_overrides.clear()

    def ask(self, question, headers=USER_HEADERS, **extra):
        return self.client.post("/api/v1/ask", json={"question": question, **extra}, headers=headers)

    def calibrate(self):
        res = self.client.put(
            "/api/v1/ask/preferences",
            json={"calibration_answers": FULL_CALIBRATION},
            headers=USER_HEADERS,
        )
        self.assertEqual(res.status_code, 200)
        return res.json()["preferences"]

    def credits(self):
        with self.Session() as db:
            return db.query(UserAIPreferences).filter_by(user_id=1).one().ai_credits

    # Preferences

    def test_default_preferences(self):
        prefs = self.client.get("/api/v1/ask/preferences", headers=USER_HEADERS).json()["preferences"]
        self.assertEqual(prefs["ai_credits"], 5)
        self.assertIsNone(prefs["calibration"])
        self.assertIsNone(prefs["answer_depth"])

    def test_put_preferences_maps_calibration(self):
        prefs = self.calibrate()
        self.assertEqual(prefs["answer_depth"], "advanced")
        self.assertTrue(prefs["calibration"]["goal_score"])

        # Explicit depth wins over the mapped one
        res = self.client.put("/api/v1/ask/preferences", json={"answer_depth": "beginner"}, headers=USER_HEADERS)
        self.assertEqual(res.json()["preferences"]["answer_depth"], "beginner")

    def test_put_preferences_incomplete_calibration(self):
        res = self.client.put(
            "/api/v1/ask/preferences",
            json={"calibration_answers": {"goal": "score"}},
            headers=USER_HEADERS,
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["error"]["details"], {"missing": "carry_balance"})

    # Ask flow

    def test_onboarding_required(self):
        res = self.ask(ANSWERED_QUESTION, headers={"x-user-id": "u_002"})
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()["detail"]["error"]["code"], "ONBOARDING_REQUIRED")

    def test_uncalibrated_user_gets_first_question(self):
        client = fake_openai(GENERATED)
        with patch("app.services.llm_service.openai_client", client):
            res = self.ask(ANSWERED_QUESTION)

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["calibration"]["needed"])
        self.assertEqual(body["calibration"]["questions"][0]["id"], "goal")
        self.assertFalse(body["routing"]["llm_called"])
        self.assertEqual(body["ai_credits_remaining"], 5)
        client.chat.completions.create.assert_not_called()

    def test_myth_is_blocked_without_spending_credit(self):
        self.calibrate()
        client = fake_openai(GENERATED)
        with patch("app.services.llm_service.openai_client", client):
            res = self.ask(MYTH_QUESTION)

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["blocked"])
        self.assertEqual(body["question_type"], "myth")
        self.assertIn("1-9%", body["summary"])
        self.assertEqual(body["ai_credits_remaining"], 5)
        client.chat.completions.create.assert_not_called()

    def test_generated_answer_spends_one_credit(self):
        self.calibrate()
        client = fake_openai(GENERATED)
        with patch("app.services.llm_service.openai_client", client):
            res = self.ask(ANSWERED_QUESTION)

        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["routing"]["llm_called"])
        self.assertEqual(body["routing"]["mode"], "llm")
        self.assertEqual(body["answer_depth"], "advanced")
        self.assertFalse(body["blocked"])
        self.assertEqual(body["ai_credits_remaining"], 4)
        self.assertEqual(self.credits(), 4)

        _, kwargs = client.chat.completions.create.call_args
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        self.assertEqual(kwargs["messages"][1]["content"], ANSWERED_QUESTION)

    def test_calibration_in_request_is_saved(self):
        with patch("app.services.llm_service.openai_client", fake_openai(GENERATED)):
            res = self.ask(ANSWERED_QUESTION, calibration_answers=FULL_CALIBRATION)

        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.json()["routing"]["llm_called"])

        prefs = self.client.get("/api/v1/ask/preferences", headers=USER_HEADERS).json()["preferences"]
        self.assertEqual(prefs["answer_depth"], "advanced")
        self.assertIsNotNone(prefs["calibration"])

    def test_credits_exhausted(self):
        self.calibrate()
        with self.Session() as db:
            db.query(UserAIPreferences).filter_by(user_id=1).update({"ai_credits": 0})
            db.commit()

        client = fake_openai(GENERATED)
        with patch("app.services.llm_service.openai_client", client):
            res = self.ask(ANSWERED_QUESTION)
            myth = self.ask(MYTH_QUESTION)

        self.assertEqual(res.status_code, 402)
        self.assertEqual(res.json()["detail"]["error"]["code"], "AI_CREDITS_EXHAUSTED")
        client.chat.completions.create.assert_not_called()
        # Deterministic answers still work at zero credits
        self.assertEqual(myth.status_code, 200)

    def test_malformed_generation_keeps_credit(self):
        self.calibrate()
        with patch("app.services.llm_service.openai_client", fake_openai("Sure! Here's my answer")):
            res = self.ask(ANSWERED_QUESTION)

        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json()["detail"]["error"]["code"], "INVALID_OUTPUT_SCHEMA")
        self.assertEqual(self.credits(), 5)

    def test_ai_unavailable(self):
        self.calibrate()
        with patch("app.services.llm_service.openai_client", None):
            res = self.ask(ANSWERED_QUESTION)

        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.json()["detail"]["error"]["code"], "AI_UNAVAILABLE")

    def test_question_validation(self):
        short = self.ask("Hi")
        self.assertEqual(short.status_code, 400)
        self.assertEqual(short.json()["error"]["code"], "VALIDATION_ERROR")

        # Long enough for the schema, too short once control characters are stripped
        control = self.ask("\x00\x01\x02\x03\x04Hi")
        self.assertEqual(control.status_code, 400)
        self.assertEqual(control.json()["detail"]["error"]["code"], "VALIDATION_ERROR")

    def test_rate_limit(self):
        self.calibrate()
        with patch.object(RateLimitConfig, "ASK_PER_MINUTE", 2):
            first = self.ask(MYTH_QUESTION)
            second = self.ask(MYTH_QUESTION)
            third = self.ask(MYTH_QUESTION)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(third.status_code, 429)
        self.assertEqual(third.json()["detail"]["error"]["code"], "RATE_LIMITED")
        self.assertGreaterEqual(int(third.headers["retry-after"]), 1)

    def test_audit_is_redacted(self):
        self.calibrate()
        res = self.ask("I'm jane.doe@example.com. Is 0% utilization best?")
        self.assertEqual(res.status_code, 200)

        with self.Session() as db:
            [row] = db.query(AskAuditLog).all()
            self.assertNotIn("jane.doe", row.question_redacted)
            self.assertIn("[EMAIL]", row.question_redacted)
            self.assertEqual(row.redaction_types, ["email"])
            self.assertEqual(row.outcome, "myth_blocked")
            self.assertFalse(row.llm_called)

        history = self.client.get("/api/v1/ask/history", headers=USER_HEADERS).json()["history"]
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0]["request_id"], res.json()["request_id"])
        self.assertNotIn("jane.doe", history[0]["question_redacted"])


if __name__ == "__main__":
    unittest.main()
