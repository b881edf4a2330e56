"""Environment-driven service settings."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


@dataclass(frozen=True)
class Settings:
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    cors_allow_origins: Tuple[str, ...] = ("*",)
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @property
    def max_upload_mb(self) -> int:
        return self.max_upload_bytes // (1024 * 1024)


def _parse_origins(raw: str | None) -> Tuple[str, ...]:
    if not raw:
        return ("*",)
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or ("*",)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment once per process.

    Call ``get_settings.cache_clear()`` after changing env vars in tests.
    """

    return Settings(
        max_upload_bytes=int(os.getenv("MAX_UPLOAD_BYTES") or DEFAULT_MAX_UPLOAD_BYTES),
        cors_allow_origins=_parse_origins(os.getenv("CORS_ALLOW_ORIGINS")),
        host=os.getenv("HOST") or "0.0.0.0",
        port=int(os.getenv("PORT") or 3000),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
