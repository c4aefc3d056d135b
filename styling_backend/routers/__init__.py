from .credits import router as credits_router, get_credit_service
from .health import router as health_router

__all__ = [
    "credits_router",
    "health_router",
    "get_credit_service",
]
