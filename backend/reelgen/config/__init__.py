"""
Application configuration and settings
"""

from dotenv import load_dotenv

load_dotenv()

from .settings import (  # noqa: E402
    BACKEND_DIR,
    DEFAULT_DATA_DIR,
    DEFAULT_MUSIC_DIR,
    DEFAULT_STORAGE_DIR,
    DEFAULT_WORK_DIR,
    Settings,
)
from .templates import (  # noqa: E402
    BUILTIN_TEMPLATES,
    FLYOVER_SLOT,
    MusicBed,
    TemplateModel,
    TemplateRegistry,
    TemplateSpec,
)

SUPPORTED_INPUT_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".mp4", ".mov")

__all__ = [
    "BACKEND_DIR",
    "DEFAULT_DATA_DIR",
    "DEFAULT_MUSIC_DIR",
    "DEFAULT_STORAGE_DIR",
    "DEFAULT_WORK_DIR",
    "Settings",
    "BUILTIN_TEMPLATES",
    "FLYOVER_SLOT",
    "MusicBed",
    "TemplateModel",
    "TemplateRegistry",
    "TemplateSpec",
    "SUPPORTED_INPUT_EXTENSIONS",
]
