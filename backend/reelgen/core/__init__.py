"""
Core Module - Cross-cutting concerns and shared infrastructure

Organization:
    - logging.py: Structured logging configuration and utilities
    - exceptions.py: Exception hierarchy shared by every layer
    - runtime.py: Startup guards (media binaries, writable directories)

Usage:
    from reelgen.core import get_logger, LogTimer
"""

from .logging import (
    setup_logging,
    get_logger,
    set_job_context,
    clear_context,
    LogTimer,
)

from .exceptions import (
    ReelGenError,
    PipelineError,
    InfrastructureError,
    ValidationError,
    JobNotFound,
    ClipGenerationError,
    SynthesisFailed,
    SynthesisTimeout,
    TemplateCompositionFailed,
    NoSuccessfulClips,
    NoSuccessfulTemplates,
    StorageError,
    ServiceUnavailable,
)

from .runtime import (
    REQUIRED_MEDIA_TOOLS,
    parse_bool_env,
    missing_runtime_tools,
    assert_directory_writable,
    run_startup_runtime_checks,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "set_job_context",
    "clear_context",
    "LogTimer",
    # Exceptions
    "ReelGenError",
    "PipelineError",
    "InfrastructureError",
    "ValidationError",
    "JobNotFound",
    "ClipGenerationError",
    "SynthesisFailed",
    "SynthesisTimeout",
    "TemplateCompositionFailed",
    "NoSuccessfulClips",
    "NoSuccessfulTemplates",
    "StorageError",
    "ServiceUnavailable",
    # Runtime guards
    "REQUIRED_MEDIA_TOOLS",
    "parse_bool_env",
    "missing_runtime_tools",
    "assert_directory_writable",
    "run_startup_runtime_checks",
]
