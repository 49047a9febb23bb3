"""Shared type definitions and the error taxonomy."""

from enum import Enum
from typing import Optional


class PhaseStatus(str, Enum):
    """Outcome of one phase of a refinement iteration."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class RefinementError(Exception):
    """Base class for refinement errors."""

    def __init__(self, phase: str, reason: str):
        self.phase = phase
        self.reason = reason
        super().__init__(f"[{phase}] {reason}")


class ConfigError(RefinementError):
    """
    Missing or invalid session configuration.

    Fatal: raised before any oracle call and never caught by the loop.
    """

    def __init__(self, reason: str, field: Optional[str] = None):
        self.field = field
        super().__init__("config", reason)


class OracleFailure(RefinementError):
    """The oracle returned nothing usable (empty or failed response)."""


class ParseFailure(RefinementError):
    """An oracle answer could not be parsed (recommendation, verdict)."""


class GapAnalysisFailure(RefinementError):
    """Checklist extraction produced nothing to compare."""
