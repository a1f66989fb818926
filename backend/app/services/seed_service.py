import logging
from datetime import datetime

from app.db.db import Base, SessionLocal, engine
from app.services.card_service import seed_card_catalog
from cardpilot.registry import REGISTRY_VERIFIED_AT

logger = logging.getLogger(__name__)


def init_sample_data() -> None:
    """Create missing tables and load the built-in card catalog on startup."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        added = seed_card_catalog(session, datetime.fromisoformat(REGISTRY_VERIFIED_AT))
        if added:
            logger.info("Seeded %d catalog cards", added)
    finally:
        session.close()
