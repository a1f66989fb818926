from .card import Card, CardRewardRule, CardMerchantExclusion
from .merchant import MerchantOverrideRecord, MerchantSuggestionRecord
from .user_profile import UserProfile, UserProfileCreate, UserProfileResponse
from .credit_profile import CreditProfileRecord, CreditProfileUpdate
from .user_owned_cards import UserOwnedCard, UserOwnedCardStatus, WalletUpdate
from .ai_preferences import UserAIPreferences, AIPreferencesUpdate, AskRequestBody
from .transaction import UserTransaction, TransactionCreate, TransactionRequest
from .ask_audit import AskAuditLog, RateLimit

__all__ = [
    "Card",
    "CardRewardRule",
    "CardMerchantExclusion",
    "MerchantOverrideRecord",
    "MerchantSuggestionRecord",
    "UserProfile",
    "UserProfileCreate",
    "UserProfileResponse",
    "CreditProfileRecord",
    "CreditProfileUpdate",
    "UserOwnedCard",
    "UserOwnedCardStatus",
    "WalletUpdate",
    "UserAIPreferences",
    "AIPreferencesUpdate",
    "AskRequestBody",
    "UserTransaction",
    "TransactionCreate",
    "TransactionRequest",
    "AskAuditLog",
    "RateLimit",
]
