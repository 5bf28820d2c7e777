"""Exception hierarchy for the ground-cover pipeline."""


class GroundCoverError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(GroundCoverError, ValueError):
    """Observed and predicted inputs do not line up (length or class set)."""


class EmptyInputError(GroundCoverError, ValueError):
    """An aggregate was requested over zero records."""


class NotFittedError(GroundCoverError, RuntimeError):
    """A model was used for prediction before being fitted or loaded."""
