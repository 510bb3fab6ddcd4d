import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from registry_backend.api.dependencies import close_http_client
from registry_backend.api.routes import favorites, profile, spam, users
from registry_backend.core.audit import configure_audit_logging
from registry_backend.core.config import Settings, get_settings
from registry_backend.core.errors import RegistryError, registry_exception_handler
from registry_backend.core.redis import close_redis, get_redis

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
configure_audit_logging()


def allowed_origins(settings: Settings) -> list[str]:
    if not settings.cors_origins:
        if settings.environment == "production":
            raise ValueError("CORS_ORIGINS must be configured in production")
        return ["http://localhost:3000"]
    return [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_http_client()
    await close_redis()


app = FastAPI(
    title="Package Registry API",
    description="User pages, favorites, GitHub sync and spam moderation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_exception_handler(RegistryError, registry_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins(get_settings()),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
    max_age=86400,
)


@app.get("/health")
async def health_check():
    # Favorites degrade without Redis, so the API stays up and reports it
    redis_ok = await get_redis() is not None
    return {"status": "ok", "redis": "up" if redis_ok else "unavailable"}


app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(favorites.router, prefix="/users", tags=["favorites"])
app.include_router(profile.router, prefix="/profile", tags=["profile"])
app.include_router(spam.router, prefix="/spammers", tags=["moderation"])
