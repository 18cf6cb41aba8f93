"""
Error taxonomy for metaPredictor.

Configuration and data errors derive from ValueError so that callers catching
the ValueErrors raised by the rest of the stack keep working.
"""

from typing import Any, Dict, List, Optional


class PipelineError(Exception):
    """Base class for every error raised by the metaPredictor pipeline."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class ConfigurationError(PipelineError, ValueError):
    """Invalid parameter or parameter combination."""


class DataError(PipelineError, ValueError):
    """Input data inconsistent with what a stage requires."""


class InternalConsistencyError(PipelineError, RuntimeError):
    """A structurally guaranteed invariant was violated (a bug, not a user error)."""


class TrainingError(PipelineError):
    """
    One or more training instances failed.

    Attributes:
        failures: Mapping of linear model index to the exception it raised
        partial_models: Models that trained successfully, for diagnostics only
    """

    def __init__(
        self,
        message: str,
        failures: Dict[int, BaseException],
        partial_models: Optional[List[Any]] = None,
        stage: Optional[str] = None
    ):
        super().__init__(message, stage=stage)
        self.failures = failures
        self.partial_models = partial_models or []
