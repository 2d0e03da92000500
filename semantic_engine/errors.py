"""
semantic_engine/errors.py
Exceptions raised by the engine. Input problems never raise; these are
reserved for invariant violations and caller-requested cancellation.
"""


class SemanticEngineError(Exception):
    """Base class for engine errors."""


class SegmentationError(SemanticEngineError):
    """A segment reached finalization in an impossible state (programming error)."""


class PipelineCancelled(SemanticEngineError):
    """Raised when a CancellationToken fires. Partial results are discarded."""
