"""
Environment-driven pipeline settings.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

PACKAGE_DIR = Path(__file__).parent.parent
BACKEND_DIR = PACKAGE_DIR.parent
DEFAULT_WORK_DIR = BACKEND_DIR / "work"
DEFAULT_DATA_DIR = BACKEND_DIR / "data"
DEFAULT_STORAGE_DIR = BACKEND_DIR / "storage"
DEFAULT_MUSIC_DIR = BACKEND_DIR / "assets" / "music"


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(int(raw), minimum)
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(float(raw), minimum)
    except (TypeError, ValueError):
        return default


def _env_list(name: str) -> Tuple[str, ...]:
    raw = _env_str(name)
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for one pipeline process.

    Built once via ``Settings.from_env()`` and injected into services.
    Tests construct it directly or use ``with_overrides``.
    """

    work_dir: Path = DEFAULT_WORK_DIR
    data_dir: Path = DEFAULT_DATA_DIR
    music_dir: Path = DEFAULT_MUSIC_DIR

    storage_backend: str = "local"
    storage_dir: Path = DEFAULT_STORAGE_DIR
    aws_bucket: Optional[str] = None
    aws_region: Optional[str] = None

    synthesis_api_url: str = "https://api.dev.runwayml.com"
    synthesis_api_key: Optional[str] = None
    synthesis_model: str = "gen3a_turbo"
    synthesis_clip_seconds: int = 5
    synthesis_ratio: str = "768:1280"
    flyover_api_url: str = "https://aerialview.googleapis.com"
    flyover_api_key: Optional[str] = None
    http_timeout_seconds: float = 60.0

    clip_batch_size: int = 3
    template_batch_size: int = 3
    progress_flush_every: int = 5

    poll_interval_seconds: float = 10.0
    max_poll_attempts: int = 30

    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 10.0

    cache_short_ttl_hours: float = 24.0
    cache_long_ttl_hours: float = 24.0 * 7
    cache_frequent_threshold: int = 5
    cache_purge_interval_minutes: float = 60.0

    recovery_window_hours: float = 24.0
    recovery_batch_limit: int = 5
    recovery_include_processing: bool = False

    default_templates: Tuple[str, ...] = field(default_factory=tuple)
    template_config_file: Optional[Path] = None

    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[Path] = None
    strict_runtime_checks: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        template_file = _env_str("TEMPLATE_CONFIG_FILE")
        log_file = _env_str("LOG_FILE")
        return cls(
            work_dir=Path(_env_str("REELGEN_WORK_DIR", str(DEFAULT_WORK_DIR))),
            data_dir=Path(_env_str("REELGEN_DATA_DIR", str(DEFAULT_DATA_DIR))),
            music_dir=Path(_env_str("REELGEN_MUSIC_DIR", str(DEFAULT_MUSIC_DIR))),
            storage_backend=(_env_str("STORAGE_BACKEND", "local") or "local").lower(),
            storage_dir=Path(_env_str("STORAGE_DIR", str(DEFAULT_STORAGE_DIR))),
            aws_bucket=_env_str("AWS_BUCKET"),
            aws_region=_env_str("AWS_REGION"),
            synthesis_api_url=_env_str("SYNTHESIS_API_URL", cls.synthesis_api_url),
            synthesis_api_key=_env_str("SYNTHESIS_API_KEY"),
            synthesis_model=_env_str("SYNTHESIS_MODEL", cls.synthesis_model),
            synthesis_clip_seconds=_env_int("SYNTHESIS_CLIP_SECONDS", 5, 1),
            synthesis_ratio=_env_str("SYNTHESIS_RATIO", cls.synthesis_ratio),
            flyover_api_url=_env_str("FLYOVER_API_URL", cls.flyover_api_url),
            flyover_api_key=_env_str("FLYOVER_API_KEY"),
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", 60.0, 1.0),
            clip_batch_size=_env_int("CLIP_BATCH_SIZE", 3, 1),
            template_batch_size=_env_int("TEMPLATE_BATCH_SIZE", 3, 1),
            progress_flush_every=_env_int("PROGRESS_FLUSH_EVERY", 5, 1),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", 10.0, 0.0),
            max_poll_attempts=_env_int("MAX_POLL_ATTEMPTS", 30, 1),
            retry_max_attempts=_env_int("RETRY_MAX_ATTEMPTS", 3, 1),
            retry_base_delay_seconds=_env_float("RETRY_BASE_DELAY_SECONDS", 1.0, 0.0),
            retry_max_delay_seconds=_env_float("RETRY_MAX_DELAY_SECONDS", 10.0, 0.0),
            cache_short_ttl_hours=_env_float("CACHE_SHORT_TTL_HOURS", 24.0, 0.0),
            cache_long_ttl_hours=_env_float("CACHE_LONG_TTL_HOURS", 24.0 * 7, 0.0),
            cache_frequent_threshold=_env_int("CACHE_FREQUENT_THRESHOLD", 5, 1),
            cache_purge_interval_minutes=_env_float("CACHE_PURGE_INTERVAL_MINUTES", 60.0, 1.0),
            recovery_window_hours=_env_float("RECOVERY_WINDOW_HOURS", 24.0, 0.0),
            recovery_batch_limit=_env_int("RECOVERY_BATCH_LIMIT", 5, 1),
            recovery_include_processing=_env_bool("RECOVERY_INCLUDE_PROCESSING", False),
            default_templates=_env_list("REEL_TEMPLATES"),
            template_config_file=Path(template_file) if template_file else None,
            log_level=_env_str("LOG_LEVEL", "INFO"),
            log_json=_env_bool("LOG_JSON", False),
            log_file=Path(log_file) if log_file else None,
            strict_runtime_checks=_env_bool(
                "STARTUP_STRICT_RUNTIME_CHECKS",
                (_env_str("ENV", "") or "").lower() == "production",
            ),
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)

    @property
    def jobs_dir(self) -> Path:
        return self.data_dir / "jobs"

    @property
    def assets_index_file(self) -> Path:
        return self.data_dir / "processed_assets.json"

    @property
    def listings_file(self) -> Path:
        return self.data_dir / "listings.json"
