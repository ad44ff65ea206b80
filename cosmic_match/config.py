import os
from functools import lru_cache
from pydantic import BaseModel, Field
from pathlib import Path as _Path

from dotenv import load_dotenv as _load_dotenv

# Load .env early if not already loaded
_load_dotenv(dotenv_path=_Path(__file__).resolve().parent.parent / ".env", override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _redis_pubsub_enabled_default() -> bool:
    explicit = os.getenv("REDIS_PUBSUB_ENABLED")
    if explicit is not None:
        return explicit.lower() in ("1", "true", "yes")
    return bool(os.getenv("REDIS_URL"))


class Settings(BaseModel):
    # Support multiple common env var names for Mongo connection string
    mongo_uri: str = Field(
        default_factory=lambda: (
            os.getenv("MONGO_URI")
            or os.getenv("MONGODB_URI")
            or os.getenv("MONGO_URL")
            or ""
        )
    )
    mongo_db: str = Field(default_factory=lambda: os.getenv("MONGO_DB_NAME", "cosmic_match"))
    # Optional: provide a non-SRV fallback URI (e.g., mongodb://127.0.0.1:27017)
    mongo_alt_uri: str = Field(default_factory=lambda: os.getenv("MONGO_ALT_URI", ""))
    # Optional: force direct connection (applies to non-SRV URIs)
    mongo_direct: bool = Field(default_factory=lambda: _env_flag("MONGO_DIRECT"))
    cors_origin: str = Field(default_factory=lambda: os.getenv("CORS_ORIGIN", "http://localhost:8081"))
    port: int = Field(default_factory=lambda: int(os.getenv("PY_BACKEND_PORT", "8080")))

    # Tokens are issued by the auth provider; we only verify them
    jwt_secret: str = Field(default_factory=lambda: os.getenv("JWT_SECRET", ""))
    jwt_audience: str = Field(default_factory=lambda: os.getenv("JWT_AUDIENCE", ""))

    # Client-side timeout applied to every backend call
    backend_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("BACKEND_TIMEOUT_SECONDS", "30"))
    )

    # Matching
    candidate_limit: int = Field(default_factory=lambda: int(os.getenv("CANDIDATE_LIMIT", "20")))
    candidate_pool_size: int = Field(default_factory=lambda: int(os.getenv("CANDIDATE_POOL_SIZE", "200")))

    # Redis (realtime change feed)
    redis_url: str = Field(default_factory=lambda: os.getenv("REDIS_URL", ""))
    redis_pubsub_enabled: bool = Field(default_factory=_redis_pubsub_enabled_default)
    redis_pubsub_prefix: str = Field(default_factory=lambda: os.getenv("REDIS_PUBSUB_PREFIX", "cm"))
    realtime_debounce_ms: int = Field(default_factory=lambda: int(os.getenv("REALTIME_DEBOUNCE_MS", "500")))

    # Object storage
    max_photos: int = Field(default_factory=lambda: int(os.getenv("MAX_PHOTOS", "6")))
    max_upload_bytes: int = Field(
        default_factory=lambda: int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
    )
    avatars_folder: str = Field(default_factory=lambda: os.getenv("AVATARS_FOLDER", "avatars"))
    chat_images_folder: str = Field(default_factory=lambda: os.getenv("CHAT_IMAGES_FOLDER", "chat-images"))


@lru_cache()
def get_settings() -> Settings:
    return Settings()
