import os
from dataclasses import dataclass
from pathlib import Path

try:
    from dotenv import load_dotenv

    # Always load .env from the repository root (stable, regardless of CWD)
    BASE_DIR = Path(__file__).resolve().parents[2]
    dotenv_path = BASE_DIR / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False)
except ImportError:
    # dotenv is optional; if not installed, env vars still work
    pass


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv(
        "DATABASE_URL",
        "postgresql+psycopg://sq:sq@localhost:5433/series_quiz",
    )
    env: str = os.getenv("ENV", "local")

    # Fast cache
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    cache_backend: str = os.getenv("CACHE_BACKEND", "redis")  # redis | memory
    # Long window: membership drift, not the TTL, is what makes an aggregate stale
    cumulative_quiz_cache_ttl_seconds: int = int(os.getenv("CUMULATIVE_QUIZ_CACHE_TTL_SECONDS", "604800"))

    # Generation
    default_model: str = os.getenv("DEFAULT_MODEL", "gpt-4")
    ai_features_enabled: bool = _env_bool("AI_FEATURES_ENABLED", True)
    quiz_enabled: bool = _env_bool("QUIZ_ENABLED", True)

    # Where the per-video order hint lives inside videos.metadata_json
    video_metadata_namespace: str = os.getenv("VIDEO_METADATA_NAMESPACE", "http://ethz.ch/video/metadata")
    video_order_field: str = os.getenv("VIDEO_ORDER_FIELD", "order")


settings = Settings()
