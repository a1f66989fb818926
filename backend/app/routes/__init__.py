from .merchants import router as merchants_router
from .admin import router as admin_router
from .recommendation import router as recommendation_router
from .catalog import router as catalog_router
from .wallet import router as wallet_router
from .credit_profile import router as credit_profile_router
from .transactions import router as transactions_router
from .ask import router as ask_router
from .users import router as users_router

__all__ = [
    "merchants_router",
    "admin_router",
    "recommendation_router",
    "catalog_router",
    "wallet_router",
    "credit_profile_router",
    "transactions_router",
    "ask_router",
    "users_router",
]
