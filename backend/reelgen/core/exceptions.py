"""
Core Exceptions
Standardized exception hierarchy for the reel pipeline.
"""

from typing import Dict, Optional


class ReelGenError(Exception):
    """Base exception for all application errors."""
    pass


class PipelineError(ReelGenError):
    """Base exception for media pipeline errors."""
    pass


class InfrastructureError(ReelGenError):
    """Base exception for infrastructure errors (storage, vendor transport)."""
    pass


class ValidationError(PipelineError):
    """Job input violates template requirements. Terminal, never retried."""
    pass


class JobNotFound(PipelineError):
    pass


class ClipGenerationError(PipelineError):
    """A single clip (photo motion clip or flyover) could not be produced."""
    pass


class SynthesisFailed(ClipGenerationError):
    """The vendor reported a terminal failure for the task."""
    pass


class SynthesisTimeout(ClipGenerationError):
    """The task did not finish within the polling bound."""

    def __init__(self, task_id: str, attempts: int):
        super().__init__(f"Task {task_id} did not complete after {attempts} polls")
        self.task_id = task_id
        self.attempts = attempts


class TemplateCompositionFailed(PipelineError):
    def __init__(self, template: str, reason: str):
        super().__init__(f"Template '{template}' composition failed: {reason}")
        self.template = template
        self.reason = reason


class NoSuccessfulClips(PipelineError):
    """Every per-photo synthesis failed."""

    def __init__(self, failures: Dict[int, str]):
        detail = "; ".join(f"photo {index}: {reason}" for index, reason in sorted(failures.items()))
        super().__init__(f"No clips could be generated ({detail})" if detail else "No clips could be generated")
        self.failures = failures


class NoSuccessfulTemplates(PipelineError):
    """Every requested template failed to compose or upload."""

    def __init__(self, failures: Dict[str, str]):
        detail = "; ".join(f"{name}: {reason}" for name, reason in failures.items())
        super().__init__(f"All templates failed ({detail})")
        self.failures = failures


class StorageError(InfrastructureError):
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ServiceUnavailable(InfrastructureError):
    """Transient vendor error (rate limiting or 5xx). Safe to retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
