from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from .. import __version__
from ..config import get_settings
from ..exceptions import (
    CreditError,
    credit_exception_handler,
    validation_exception_handler,
    general_exception_handler
)
from ..routers import credits_router, health_router

settings = get_settings()

app = FastAPI(
    title="Styling Credits API",
    description="""
    Credits backend for the styling app:

    * **Balances**: per-user credit balance, created on first use with the starting credits
    * **Packs**: catalog of purchasable credit packs and pack purchase
    * **Charges**: deduct credits for personalized looks and remixes before generation runs
    * **History**: append-only transaction log

    When Supabase is not configured or unreachable, credits are served from an
    in-memory store for the lifetime of the process.

    ## Base URL
    All API endpoints are prefixed with `/api`
    """,
    version=__version__,
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    openapi_tags=[
        {
            "name": "Credits",
            "description": "Balances, credit packs, charges and transaction history"
        },
        {
            "name": "Health",
            "description": "Health check and monitoring endpoints"
        }
    ]
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Exception handlers
app.add_exception_handler(CreditError, credit_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Include routers
app.include_router(health_router, prefix=settings.api_prefix)
app.include_router(credits_router, prefix=settings.api_prefix)
