# jobflow/core/config.py
import os
from pathlib import Path

from dotenv import load_dotenv


def parse_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def merge_unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in items:
        if v in seen:
            continue
        seen.add(v)
        out.append(v)
    return out


class Settings:
    def __init__(self) -> None:
        self.ENV = os.getenv("ENV", "dev").strip().lower()  # dev | prod
        if self.ENV != "prod":
            # Load .env only for non-prod so prod can't be accidentally influenced by local files.
            load_dotenv()

        # ----------------------------
        # Server database (remote store)
        # ----------------------------
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+pysqlite:///./jobflow-server.db").strip()

        # ----------------------------
        # Device database (local store)
        # ----------------------------
        default_local = Path.home() / ".jobflow" / "local.db"
        self.LOCAL_DB_PATH = os.getenv("LOCAL_DB_PATH", str(default_local)).strip()

        # ----------------------------
        # Remote API client
        # ----------------------------
        self.API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000").strip().rstrip("/")
        self.REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "10"))

        # Authenticated application list is served from memory for this long.
        self.APPLICATION_CACHE_TTL_SECONDS = float(os.getenv("APPLICATION_CACHE_TTL_SECONDS", "30"))

        # ----------------------------
        # CORS
        # ----------------------------
        dev_defaults = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
        cors_from_env = parse_csv(os.getenv("CORS_ORIGINS"))
        if self.ENV == "prod":
            self.CORS_ORIGINS = merge_unique(cors_from_env)
        else:
            self.CORS_ORIGINS = merge_unique(cors_from_env + dev_defaults)

        # ----------------------------
        # Auth / JWT
        # ----------------------------
        self.JWT_SECRET = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

        self._validate_prod()

    def _validate_prod(self) -> None:
        if self.ENV != "prod":
            return

        missing: list[str] = []
        if not self.JWT_SECRET:
            missing.append("JWT_SECRET")
        if not os.getenv("DATABASE_URL"):
            missing.append("DATABASE_URL")
        if not self.CORS_ORIGINS:
            missing.append("CORS_ORIGINS")

        cors_joined = ",".join(self.CORS_ORIGINS)
        if "localhost" in cors_joined or "127.0.0.1" in cors_joined:
            raise RuntimeError("CORS_ORIGINS contains localhost/dev origins in prod")

        if self.DATABASE_URL.startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must not point at SQLite in prod")

        if self.API_BASE_URL and not self.API_BASE_URL.startswith("https://"):
            raise RuntimeError("API_BASE_URL should be https://... in prod")

        if missing:
            raise RuntimeError(f"Missing required prod env vars: {', '.join(missing)}")


settings = Settings()


def require_jwt_secret() -> None:
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set")
