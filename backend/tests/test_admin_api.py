import sys
import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# Ensure `backend/` is on sys.path so `import app...` works
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(BACKEND_DIR))

from app.config import AdminConfig  # noqa: E402
from app.db.db import Base  # noqa: E402
from app.dependencies.db import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.merchant import MerchantOverrideRecord, MerchantSuggestionRecord  # noqa: E402
from app.services import merchant_service  # noqa: E402
from cardpilot.ai_cache import AIClassification  # noqa: E402
from cardpilot.categories import Confidence, MerchantCategory  # noqa: E402


class AdminApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        with self.Session() as db:
            db.add(
                MerchantSuggestionRecord(
                    id="sugg-1",
                    url="https://zzqx-widgets.io/item",
                    domain="zzqx-widgets.io",
                    suggested_category="electronics",
                    confidence="medium",
                    rationale="Sells gadgets",
                    source="ai",
                    merchant_name="Zzqx Widgets",
                    status="pending",
                )
            )
            db.commit()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)
        merchant_service.ai_cache.clear()

    def tearDown(self):
        app.dependency_overrides.clear()
        merchant_service.ai_cache.clear()

    def test_list_pending_suggestions(self):
        res = self.client.get("/api/v1/admin/review-queue")
        self.assertEqual(res.status_code, 200)

        suggestions = res.json()["suggestions"]
        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0]["domain"], "zzqx-widgets.io")
        self.assertEqual(suggestions[0]["status"], "pending")

    def test_approve_creates_override(self):
        res = self.client.post(
            "/api/v1/admin/review-queue/sugg-1/approve",
            json={"notes": "Checked the site", "category": "office"},
        )
        self.assertEqual(res.status_code, 200)

        body = res.json()
        self.assertEqual(body["suggestion"]["status"], "approved")
        self.assertEqual(body["suggestion"]["reviewer_notes"], "Checked the site")
        self.assertEqual(body["override"]["domain"], "zzqx-widgets.io")
        self.assertEqual(body["override"]["category"], "office")
        self.assertEqual(body["override"]["display_name"], "Zzqx Widgets")

        # The override now wins on resolution
        merchant = self.client.get(
            "/api/v1/merchants/resolve-sync", params={"url": "https://zzqx-widgets.io/item"}
        ).json()["merchant"]
        self.assertEqual(merchant["source"], "override")
        self.assertEqual(merchant["category"], "office")

        self.assertEqual(self.client.get("/api/v1/admin/review-queue").json()["suggestions"], [])

    def test_approve_without_body_uses_suggestion(self):
        res = self.client.post("/api/v1/admin/review-queue/sugg-1/approve")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["override"]["category"], "electronics")

    def test_reject_then_second_decision_conflicts(self):
        res = self.client.post("/api/v1/admin/review-queue/sugg-1/reject", json={"notes": "Not a shop"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["suggestion"]["status"], "rejected")

        again = self.client.post("/api/v1/admin/review-queue/sugg-1/approve")
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.json()["detail"]["error"]["code"], "CONFLICT")

        with self.Session() as db:
            self.assertIsNone(db.get(MerchantOverrideRecord, "zzqx-widgets.io"))

        rejected = self.client.get("/api/v1/admin/review-queue", params={"status": "rejected"}).json()
        self.assertEqual([s["id"] for s in rejected["suggestions"]], ["sugg-1"])

    def test_unknown_suggestion(self):
        res = self.client.post("/api/v1/admin/review-queue/missing/approve")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.json()["detail"]["error"]["code"], "NOT_FOUND")

    def test_override_crud(self):
        put = self.client.put(
            "/api/v1/admin/overrides/Costco.com",
            json={"display_name": "Costco Gas", "category": "gas", "rationale": "Fuel station page"},
        )
        self.assertEqual(put.status_code, 200)
        self.assertEqual(put.json()["override"]["domain"], "costco.com")

        got = self.client.get("/api/v1/admin/overrides/costco.com")
        self.assertEqual(got.status_code, 200)
        self.assertEqual(got.json()["override"]["category"], "gas")

        listed = self.client.get("/api/v1/admin/overrides").json()["overrides"]
        self.assertEqual([o["domain"] for o in listed], ["costco.com"])

        # Override shadows the registry record
        merchant = self.client.post(
            "/api/v1/merchants/resolve", json={"url": "https://www.costco.com/"}
        ).json()["merchant"]
        self.assertEqual(merchant["source"], "override")
        self.assertEqual(merchant["category"], "gas")

        deleted = self.client.delete("/api/v1/admin/overrides/costco.com")
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get("/api/v1/admin/overrides/costco.com").status_code, 404)
        self.assertEqual(self.client.delete("/api/v1/admin/overrides/costco.com").status_code, 404)

    def test_override_rejects_bad_domain_and_category(self):
        bad_domain = self.client.put(
            "/api/v1/admin/overrides/localhost",
            json={"display_name": "Local", "category": "gas"},
        )
        self.assertEqual(bad_domain.status_code, 400)
        self.assertEqual(bad_domain.json()["detail"]["error"]["code"], "VALIDATION_ERROR")

        bad_category = self.client.put(
            "/api/v1/admin/overrides/example.com",
            json={"display_name": "Example", "category": "spaceships"},
        )
        self.assertEqual(bad_category.status_code, 400)
        self.assertEqual(bad_category.json()["error"]["code"], "VALIDATION_ERROR")

    def test_ai_cache_stats_and_clear(self):
        merchant_service.ai_cache.set(
            "zzqx-widgets.io",
            AIClassification(MerchantCategory.ELECTRONICS, Confidence.MEDIUM, "Sells gadgets", "Zzqx Widgets"),
        )

        stats = self.client.get("/api/v1/admin/ai-cache/stats").json()["stats"]
        self.assertEqual(stats["count"], 1)
        self.assertIsNotNone(stats["oldest_entry"])

        self.assertEqual(self.client.post("/api/v1/admin/ai-cache/clear").json(), {"cleared": True})
        stats = self.client.get("/api/v1/admin/ai-cache/stats").json()["stats"]
        self.assertEqual(stats, {"count": 0, "oldest_entry": None})

    def test_admin_token_required_when_configured(self):
        with patch.object(AdminConfig, "TOKEN", "s3cret"):
            denied = self.client.get("/api/v1/admin/overrides")
            wrong = self.client.get("/api/v1/admin/overrides", headers={"x-admin-token": "nope"})
            allowed = self.client.get("/api/v1/admin/overrides", headers={"x-admin-token": "s3cret"})

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(denied.json()["detail"]["error"]["code"], "FORBIDDEN")
        self.assertEqual(wrong.status_code, 403)
        self.assertEqual(allowed.status_code, 200)


if __name__ == "__main__":
    unittest.main()
