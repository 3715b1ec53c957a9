"""Job orchestration - job storage, recovery and process lifecycle."""

from .job_manager import FileJobStore
from .recovery import RecoveryReport, RecoveryScanner
from .lifecycle import PipelineLifecycle

__all__ = ["FileJobStore", "RecoveryReport", "RecoveryScanner", "PipelineLifecycle"]
