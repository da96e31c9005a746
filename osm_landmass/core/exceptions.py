"""Unified pipeline exception taxonomy.

Every fatal condition in a run raises a ``PipelineError`` subclass that
carries the stage and a machine-readable code, so the CLI can log one
structured line and exit non-zero.

Taxonomy categories
-------------------
- ``ValidationError``: bad configuration or a bad auxiliary input
  (clip file); the user must fix the invocation.
- ``PermanentError``: the run cannot produce output (undecodable
  extract, no land, unwritable output).

Recoverable geometry problems (open rings, orphaned holes, repair
failures) are *not* exceptions: they are recorded as diagnostics and the
run continues.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Pipeline stage where the error occurred
            (e.g. ``"read_osm"``, ``"boolean_ops"``).
        code: Machine-readable error code (e.g. ``"OSM_DECODE_FAILED"``).
        correlation_id: Run identifier (typically the input file name).
    """

    #: Error category reported in structured payloads.
    category: str = "permanent"
    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        correlation_id: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.correlation_id = correlation_id
        super().__init__(message)

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "correlation_id": self.correlation_id,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(PipelineError):
    """Configuration or auxiliary input violates its constraints."""

    category: str = "validation"


class PermanentError(PipelineError):
    """Unrecoverable failure; the run produces no output."""

    category: str = "permanent"
