from fastapi import Depends
from sqlalchemy.orm import Session

from app.dependencies.db import get_db
from app.services.ask_service import AskService
from app.services.card_service import CardService
from app.services.credit_profile_service import CreditProfileService
from app.services.merchant_service import MerchantService
from app.services.recommendation_service import RecommendationService
from app.services.transaction_service import TransactionService
from app.services.user_service import UserService
from app.services.wallet_service import WalletService

def get_merchant_service(db: Session = Depends(get_db)) -> MerchantService:
    return MerchantService(db)

def get_card_service(db: Session = Depends(get_db)) -> CardService:
    return CardService(db)

def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    return WalletService(db)

def get_recommendation_service(db: Session = Depends(get_db)) -> RecommendationService:
    # Builds its own merchant, card and wallet services on the same session
    return RecommendationService(db)

def get_credit_profile_service(db: Session = Depends(get_db)) -> CreditProfileService:
    return CreditProfileService(db)

def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    return TransactionService(db)

def get_ask_service(db: Session = Depends(get_db)) -> AskService:
    return AskService(db)

def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)
