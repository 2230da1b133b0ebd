"""wedjat.scan — scan engine and idle/listen controller."""

from wedjat.scan.controller import ScanController
from wedjat.scan.engine import ScanEngine, ScanSession

__all__ = ["ScanController", "ScanEngine", "ScanSession"]
