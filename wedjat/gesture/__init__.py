"""wedjat.gesture — gesture sources and the detector facade."""

from wedjat.gesture.base import GestureEvent, GestureKind, GestureSource
from wedjat.gesture.detector import Detector, UnknownSourceError

__all__ = [
    "Detector",
    "GestureEvent",
    "GestureKind",
    "GestureSource",
    "UnknownSourceError",
]
