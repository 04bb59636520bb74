# utils/errors.py
"""Exception taxonomy shared by every pipeline stage."""


class PipelineError(Exception):
    """Base class for all pipeline failures."""


class SchemaError(PipelineError):
    """Input columns or values do not match the transaction schema."""


class MalformedDateError(PipelineError):
    """A purchase_date value does not match the expected format."""


class EmptyDatasetError(PipelineError):
    """A filtering step or segment left no rows to work with."""


class FitConvergenceError(PipelineError):
    """A model family failed to fit for a hyperparameter combination."""


class JoinMismatchError(PipelineError):
    """Missing feature values survived the join and the zero-fill."""


class StageError(PipelineError):
    """Fatal failure, tagged with the stage that raised it."""

    def __init__(self, stage: str, cause: Exception):
        self.stage = stage
        self.cause = cause
        super().__init__(f"[{stage}] {type(cause).__name__}: {cause}")
