import sys
import unittest
from datetime import date, datetime
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
from app.dependencies.services import get_transaction_service  # noqa: E402
from app.main import app  # noqa: E402
from app.models.transaction import UserTransaction  # noqa: E402
from app.models.user_owned_cards import UserOwnedCard, UserOwnedCardStatus  # noqa: E402
from app.models.user_profile import UserProfile  # noqa: E402
from app.services.card_service import seed_card_catalog  # noqa: E402
from app.services.transaction_service import TransactionService  # noqa: E402


USER_HEADERS = {"x-user-id": "u_001"}
TODAY = date(2025, 3, 20)


def statement():
    return [
        {"card_id": "citi-double-cash", "merchant": "Joe's Diner", "category": "dining",
         "amount_cents": 10000, "date": "2025-03-10"},
        {"card_id": "citi-double-cash", "merchant": "Netflix", "category": "streaming",
         "amount_cents": 1549, "date": "2025-01-20"},
        {"card_id": "citi-double-cash", "merchant": "Netflix", "category": "streaming",
         "amount_cents": 1549, "date": "2025-02-20"},
        {"card_id": "citi-double-cash", "merchant": "Netflix", "category": "streaming",
         "amount_cents": 1549, "date": "2025-03-20"},
        {"card_id": "citi-double-cash", "merchant": "Sofa Co", "category": "other",
         "amount_cents": 50000, "date": "2025-03-15", "is_bnpl": True},
    ]


class TransactionsApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        with self.Session() as db:
            seed_card_catalog(db, datetime(2025, 12, 1))
            db.add(UserProfile(id=1, username="u1", password_hash="x"))
            db.commit()
            db.add(UserOwnedCard(user_id=1, card_id="amex-gold", status=UserOwnedCardStatus.active))
            db.add(UserOwnedCard(user_id=1, card_id="citi-double-cash", status=UserOwnedCardStatus.active))
            db.commit()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        def override_transaction_service():
            db = self.Session()
            try:
                yield TransactionService(db, today=lambda: TODAY)
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_transaction_service] = override_transaction_service
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def test_create_transactions(self):
        res = self.client.post("/api/v1/transactions", json={"transactions": statement()}, headers=USER_HEADERS)
        self.assertEqual(res.status_code, 201)

        created = res.json()["transactions"]
        self.assertEqual(len(created), 5)
        self.assertEqual(created[0]["merchant"], "Joe's Diner")
        self.assertEqual(created[0]["date"], "2025-03-10")
        self.assertEqual(created[0]["user_id"], "u_001")
        self.assertTrue(created[4]["is_bnpl"])

    def test_missing_date_defaults_to_today(self):
        res = self.client.post(
            "/api/v1/transactions",
            json={"transactions": [{"merchant": "Corner Shop", "amount_cents": 500}]},
            headers=USER_HEADERS,
        )
        self.assertEqual(res.status_code, 201)

        [created] = res.json()["transactions"]
        self.assertEqual(created["date"], TODAY.isoformat())
        self.assertEqual(created["category"], "other")
        self.assertIsNone(created["card_id"])

    def test_card_outside_wallet_is_rejected(self):
        res = self.client.post(
            "/api/v1/transactions",
            json={"transactions": [
                {"card_id": "citi-double-cash", "merchant": "A", "amount_cents": 100},
                {"card_id": "chase-sapphire-reserve", "merchant": "B", "amount_cents": 100},
            ]},
            headers=USER_HEADERS,
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["error"]["details"]["field"], "transactions[1].card_id")

        # Batch is all-or-nothing
        with self.Session() as db:
            self.assertEqual(db.query(UserTransaction).count(), 0)

    def test_invalid_payloads(self):
        empty = self.client.post("/api/v1/transactions", json={"transactions": []}, headers=USER_HEADERS)
        self.assertEqual(empty.status_code, 400)

        negative = self.client.post(
            "/api/v1/transactions",
            json={"transactions": [{"merchant": "A", "amount_cents": -5}]},
            headers=USER_HEADERS,
        )
        self.assertEqual(negative.status_code, 400)
        self.assertEqual(negative.json()["error"]["code"], "VALIDATION_ERROR")

    def test_list_transactions_sorted_and_filtered(self):
        self.client.post("/api/v1/transactions", json={"transactions": statement()}, headers=USER_HEADERS)

        listed = self.client.get("/api/v1/transactions", headers=USER_HEADERS).json()["transactions"]
        self.assertEqual(listed[0]["date"], "2025-03-20")
        self.assertEqual(listed[-1]["date"], "2025-01-20")

        ascending = self.client.get(
            "/api/v1/transactions", params={"sort_by_date_desc": "false"}, headers=USER_HEADERS
        ).json()["transactions"]
        self.assertEqual(ascending[0]["date"], "2025-01-20")

        march = self.client.get(
            "/api/v1/transactions",
            params={"start": "2025-03-01", "end": "2025-03-31"},
            headers=USER_HEADERS,
        ).json()["transactions"]
        self.assertEqual(len(march), 3)

    def test_diagnostics(self):
        self.client.post("/api/v1/transactions", json={"transactions": statement()}, headers=USER_HEADERS)

        res = self.client.get("/api/v1/diagnostics", headers=USER_HEADERS)
        self.assertEqual(res.status_code, 200)

        body = res.json()
        report = body["report"]
        self.assertEqual(report["start_date"], "2025-02-18")
        self.assertEqual(report["end_date"], "2025-03-20")
        self.assertEqual(report["total_spend"], 630.98)
        # $100 of dining on a 2X card while holding a 4X dining card
        self.assertEqual(report["missed_value"], 2.0)
        self.assertEqual([s["merchant_normalized"] for s in report["subscriptions"]], ["netflix"])

        # A $2 miss is below the switch-rule threshold
        self.assertNotIn("switch_card_rule", [t["type"] for t in body["todos"]])
        self.assertTrue(body["subscription_todos"])
        self.assertIn("BNPL Payment Detected", [a["title"] for a in body["risk_alerts"]])
        # No credit profile, so no BNPL scoring
        self.assertEqual(body["bnpl_risks"], [])

    def _todo_types_for_dining_charge(self, amount_cents):
        txn = {"card_id": "citi-double-cash", "merchant": "Joe's Diner", "category": "dining",
               "amount_cents": amount_cents, "date": "2025-03-10"}
        self.client.post("/api/v1/transactions", json={"transactions": [txn]}, headers=USER_HEADERS)

        body = self.client.get("/api/v1/diagnostics", headers=USER_HEADERS).json()
        return body["report"]["missed_value"], [t["type"] for t in body["todos"]]

    def test_switch_card_rule_at_five_dollar_miss(self):
        missed, types = self._todo_types_for_dining_charge(25000)

        self.assertEqual(missed, 5.0)
        self.assertIn("switch_card_rule", types)

    def test_no_switch_card_rule_just_below_five_dollars(self):
        missed, types = self._todo_types_for_dining_charge(24900)

        self.assertEqual(missed, 4.98)
        self.assertNotIn("switch_card_rule", types)

    def test_diagnostics_rejects_inverted_window(self):
        res = self.client.get(
            "/api/v1/diagnostics",
            params={"start": "2025-03-20", "end": "2025-03-01"},
            headers=USER_HEADERS,
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["error"]["code"], "VALIDATION_ERROR")

    def test_unknown_user(self):
        res = self.client.get("/api/v1/transactions", headers={"x-user-id": "42"})
        self.assertEqual(res.status_code, 404)


if __name__ == "__main__":
    unittest.main()
