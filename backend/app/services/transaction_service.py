from datetime import date
from typing import Any, Callable, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session, selectinload

from app.models.credit_profile import CreditProfileRecord
from app.models.transaction import TransactionCreate, UserTransaction
from app.models.user_owned_cards import UserOwnedCard, UserOwnedCardStatus
from app.models.user_profile import UserProfile
from app.services.errors import not_found, validation_error
from cardpilot.benefits import WalletCard
from cardpilot.diagnostics import generate_diagnostics_todos, run_diagnostics
from cardpilot.opportunity import UserCreditContext, analyze_transactions
from cardpilot.subscriptions import generate_subscription_todos


class TransactionService:
    def __init__(self, db: Session, today: Callable[[], date] = date.today) -> None:
        self.db = db
        self.today = today

    def _require_user(self, user_id: int) -> UserProfile:
        user = self.db.get(UserProfile, user_id)
        if not user:
            raise not_found("Profile not found.", user_id=user_id)
        return user

    def _wallet_rows(self, user_id: int) -> List[UserOwnedCard]:
        return (
            self.db.query(UserOwnedCard)
            .options(selectinload(UserOwnedCard.card))
            .filter(UserOwnedCard.user_id == user_id, UserOwnedCard.status == UserOwnedCardStatus.active)
            .all()
        )

    def create_transactions(self, user_id: int, payloads: List[TransactionCreate]) -> List[Dict[str, Any]]:
        """Insert a batch of transactions. Every card_id must be in the user's wallet."""
        self._require_user(user_id)
        wallet_ids = {row.card_id for row in self._wallet_rows(user_id)}

        records = []
        for index, payload in enumerate(payloads):
            if payload.card_id is not None and payload.card_id not in wallet_ids:
                raise validation_error(
                    f"card_id '{payload.card_id}' not found in user wallet",
                    field=f"transactions[{index}].card_id",
                )
            records.append(
                UserTransaction(
                    user_id=user_id,
                    card_id=payload.card_id,
                    merchant=payload.merchant,
                    category=payload.category,
                    amount_cents=payload.amount_cents,
                    is_bnpl=payload.is_bnpl,
                    transaction_date=payload.transaction_date or self.today(),
                )
            )

        self.db.add_all(records)
        self.db.commit()
        for record in records:
            self.db.refresh(record)
        return [record.to_dict() for record in records]

    def _query(self, user_id: int, start: Optional[date] = None, end: Optional[date] = None):
        query = (
            self.db.query(UserTransaction)
            .options(selectinload(UserTransaction.card))
            .filter(UserTransaction.user_id == user_id)
        )
        if start is not None:
            query = query.filter(UserTransaction.transaction_date >= start)
        if end is not None:
            query = query.filter(UserTransaction.transaction_date <= end)
        return query

    def get_user_transactions(
        self,
        user_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
        sort_by_date_desc: Optional[bool] = True,
    ) -> List[Dict[str, Any]]:
        self._require_user(user_id)
        query = self._query(user_id, start, end)
        if sort_by_date_desc is True:
            query = query.order_by(UserTransaction.transaction_date.desc(), UserTransaction.id.desc())
        elif sort_by_date_desc is False:
            query = query.order_by(UserTransaction.transaction_date.asc(), UserTransaction.id.asc())
        return [row.to_dict() for row in query.all()]

    def get_diagnostics(
        self,
        user_id: int,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Dict[str, Any]:
        """
        Statement diagnostics for the user.

        Subscription detection and benefit checks look at the whole history;
        spend, missed rewards and risk alerts only at the start..end window.
        """
        self._require_user(user_id)
        if start is not None and end is not None and start > end:
            raise validation_error("start must be on or before end", field="start")

        now = self.today()
        history = [row.to_core() for row in self._query(user_id).order_by(UserTransaction.transaction_date).all()]
        wallet = [
            WalletCard(card_id=row.card.id, issuer=row.card.issuer, card_name=row.card.name)
            for row in self._wallet_rows(user_id)
        ]

        report = run_diagnostics(history, wallet, now, start, end)
        in_period = [t for t in history if report.start_date <= t.date <= report.end_date]
        analysis = analyze_transactions(
            in_period,
            [card.card_id for card in wallet],
            context=self._credit_context(user_id, in_period),
        )

        return {
            "report": jsonable_encoder(report),
            "todos": jsonable_encoder(generate_diagnostics_todos(report)),
            "subscription_todos": jsonable_encoder(generate_subscription_todos(report.subscriptions)),
            "risk_alerts": jsonable_encoder(analysis.risk_alerts),
            "bnpl_risks": jsonable_encoder(analysis.bnpl_risks),
        }

    def _credit_context(self, user_id: int, transactions) -> Optional[UserCreditContext]:
        """BNPL scoring needs the credit profile; without one BNPL risks are skipped."""
        record = self.db.query(CreditProfileRecord).filter(CreditProfileRecord.user_id == user_id).first()
        if record is None:
            return None
        return UserCreditContext(
            open_bnpl_count=sum(1 for t in transactions if t.is_bnpl),
            carry_balance=bool(record.carry_balance),
            income_bucket=record.income_bucket,
        )
