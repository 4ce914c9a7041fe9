# gpspay/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# ---------------------------------------------
# LOAD ENVIRONMENT VARIABLES
# ---------------------------------------------
load_dotenv()

from gpspay.config import settings
from gpspay.core.redis import redis_manager
from gpspay.logging_config import get_logger
from gpspay.middleware import request_id_middleware
from gpspay.services.draft_store import DraftStore
from gpspay.services.wizard import WizardRegistry

# ---------------------------------------------
# IMPORT ROUTERS
# ---------------------------------------------
from gpspay.routers import (
    admin,
    auth,
    dashboard,
    health,
    register,
    toll,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await redis_manager.connect()
    logger.info("app_started", environment=settings.ENVIRONMENT)
    yield
    await redis_manager.close()


# ---------------------------------------------
# APP INIT
# ---------------------------------------------
app = FastAPI(
    title="GPS Pay API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.state.redis_manager = redis_manager
app.state.draft_store = DraftStore(redis_manager)
app.state.wizards = WizardRegistry()

# ---------------------------------------------
# MIDDLEWARE
# ---------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(request_id_middleware)

# ---------------------------------------------
# ROUTERS
# ---------------------------------------------

# Health
app.include_router(health.router, prefix="/health", tags=["Health"])

# Auth
app.include_router(auth.router, prefix="/v1/auth", tags=["Auth"])
app.include_router(auth.callback_router)

# Registration wizards
app.include_router(register.router, prefix="/v1/register", tags=["Registration"])

# Dashboard
app.include_router(dashboard.router, prefix="/v1/dashboard", tags=["Dashboard"])

# Toll booths
app.include_router(toll.router, prefix="/v1/toll", tags=["Toll"])

# Admin
app.include_router(admin.router, prefix="/v1/admin", tags=["Admin"])


# ---------------------------------------------
# ROOT ENDPOINT
# ---------------------------------------------
@app.get("/")
def root():
    return {"message": "GPS Pay backend is running"}
