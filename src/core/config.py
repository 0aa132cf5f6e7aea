"""
Runtime settings for the analysis service.

Values come from environment variables so the same build can run locally
and behind a hosted Streamlit instance with different limits.
"""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            "Ignoring non-integer %s=%r, using %d", name, raw, default
        )
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Limits and logging options for one deployment."""

    max_upload_mb: int = 10
    analysis_timeout_seconds: int = 60
    slow_analysis_warn_seconds: int = 50
    log_level: str = "INFO"
    log_json: bool = False
    allowed_extensions: tuple[str, ...] = (".xlsx", ".xlsm")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            max_upload_mb=_env_int("RECON_MAX_UPLOAD_MB", cls.max_upload_mb),
            analysis_timeout_seconds=_env_int(
                "RECON_ANALYSIS_TIMEOUT_SECONDS", cls.analysis_timeout_seconds
            ),
            slow_analysis_warn_seconds=_env_int(
                "RECON_SLOW_ANALYSIS_WARN_SECONDS", cls.slow_analysis_warn_seconds
            ),
            log_level=os.getenv("RECON_LOG_LEVEL", cls.log_level).upper(),
            log_json=_env_bool("RECON_LOG_JSON", cls.log_json),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process (read once)."""
    return Settings.from_env()
