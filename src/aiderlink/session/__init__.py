"""Session layer: registry, sessions, output capture and file tracking."""

from aiderlink.session.correlator import CaptureState, OutputCorrelator
from aiderlink.session.registry import SessionRegistry
from aiderlink.session.session import Session, SessionState
from aiderlink.session.tracking import FileTracker, TrackedFile, parse_listing

__all__ = [
    "CaptureState",
    "FileTracker",
    "OutputCorrelator",
    "Session",
    "SessionRegistry",
    "SessionState",
    "TrackedFile",
    "parse_listing",
]
