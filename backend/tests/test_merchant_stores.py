import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.db import Base
from app.services.merchant_stores import SqlOverrideStore, SqlReviewQueue
from cardpilot.categories import Confidence, MerchantCategory
from cardpilot.errors import InvalidTransitionError
from cardpilot.merchant_intelligence import MerchantResolver, ResolutionSource
from cardpilot.overrides import MerchantOverride
from cardpilot.review_queue import SuggestionStatus


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def queue(db):
    return SqlReviewQueue(db)


def add_suggestion(queue, domain="zzqx-widgets.io"):
    return queue.add(
        url=f"https://{domain}/item",
        domain=domain,
        suggested_category=MerchantCategory.ELECTRONICS,
        confidence=Confidence.MEDIUM,
        rationale="Sells gadgets",
        merchant_name="Zzqx Widgets",
    )


def test_pending_suggestion_is_coalesced(queue):
    first = add_suggestion(queue)
    second = add_suggestion(queue, "ZZQX-widgets.io")

    assert second.id == first.id
    assert len(queue.list_pending()) == 1
    assert queue.has_pending("zzqx-widgets.io")


def test_new_suggestion_after_decision(queue):
    first = add_suggestion(queue)
    queue.reject(first.id, "Not a shop")

    second = add_suggestion(queue)

    assert second.id != first.id
    assert [s.status for s in queue.get_by_domain("zzqx-widgets.io")] == [
        SuggestionStatus.REJECTED,
        SuggestionStatus.PENDING,
    ]


def test_approve_sets_review_fields(queue):
    suggestion = add_suggestion(queue)

    approved = queue.approve(suggestion.id, "Looks right")

    assert approved.status == SuggestionStatus.APPROVED
    assert approved.reviewer_notes == "Looks right"
    assert approved.reviewed_at is not None
    assert approved.reviewed_at.tzinfo is not None
    assert not queue.has_pending("zzqx-widgets.io")


def test_terminal_states_are_final(queue):
    suggestion = add_suggestion(queue)
    queue.approve(suggestion.id)

    with pytest.raises(InvalidTransitionError):
        queue.reject(suggestion.id)


def test_unknown_suggestion(queue):
    with pytest.raises(KeyError):
        queue.approve("missing")


def test_override_store_last_write_wins(db):
    store = SqlOverrideStore(db)

    store.set(MerchantOverride("Costco.com", "Costco", MerchantCategory.WAREHOUSE_CLUB))
    store.set(MerchantOverride("costco.com", "Costco Gas", MerchantCategory.GAS))

    [override] = store.list()
    assert override.domain == "costco.com"
    assert override.category == MerchantCategory.GAS
    assert store.remove("costco.com")
    assert not store.remove("costco.com")
    assert store.get("costco.com") is None


def test_resolver_runs_on_sql_stores(db):
    resolver = MerchantResolver(overrides=SqlOverrideStore(db), review_queue=SqlReviewQueue(db))
    resolver.overrides.set(MerchantOverride("zzqx-widgets.io", "Zzqx", MerchantCategory.PET))

    context = resolver.resolve_sync("https://zzqx-widgets.io/item")

    assert context.source == ResolutionSource.OVERRIDE
    assert context.category == MerchantCategory.PET
