"""Reel assembly - orchestration, composition, progress and regeneration."""

from .composer import PlannedClip, TemplateComposer
from .progress import ProgressTracker
from .regeneration import RegenerationService, merge_clips_by_index, resolve_photo_indices
from .orchestrator import PipelineOrchestrator, template_storage_key

__all__ = [
    "PlannedClip",
    "TemplateComposer",
    "ProgressTracker",
    "RegenerationService",
    "merge_clips_by_index",
    "resolve_photo_indices",
    "PipelineOrchestrator",
    "template_storage_key",
]
