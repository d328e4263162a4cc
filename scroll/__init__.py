"""Модули скролл-захвата ScrollSnap."""

from .alignment import AlignmentEngine
from .capture_workflow import CaptureMode, CapturePhase, CaptureSession, CaptureWorkflow
from .errors import CaptureError, SaveError
from .frame import Frame, Region
from .frame_scheduler import FrameScheduler
from .scroll_capture_manager import ScrollCaptureManager
from .settings import CaptureSettings, QualityMode
from .stitch_accumulator import StitchAccumulator

__all__ = [
    "AlignmentEngine",
    "CaptureError",
    "CaptureMode",
    "CapturePhase",
    "CaptureSession",
    "CaptureSettings",
    "CaptureWorkflow",
    "Frame",
    "FrameScheduler",
    "QualityMode",
    "Region",
    "SaveError",
    "ScrollCaptureManager",
    "StitchAccumulator",
]
