"""Vendor clients for clip synthesis and flyover capture."""

from .base import (
    PENDING,
    SUCCEEDED,
    FAILED,
    TaskStatus,
    TaskService,
    PollingClient,
    normalize_status,
)
from .synthesis import HttpSynthesisService, SynthesisRequest, VideoSynthesisClient, clip_storage_key
from .flyover import FlyoverCaptureClient, FlyoverRequest, HttpFlyoverService, flyover_storage_key

__all__ = [
    "PENDING",
    "SUCCEEDED",
    "FAILED",
    "TaskStatus",
    "TaskService",
    "PollingClient",
    "normalize_status",
    "HttpSynthesisService",
    "SynthesisRequest",
    "VideoSynthesisClient",
    "clip_storage_key",
    "FlyoverCaptureClient",
    "FlyoverRequest",
    "HttpFlyoverService",
    "flyover_storage_key",
]
