# core/errors.py


class StudyEngineError(Exception):
    """Base class for engine errors."""


class InvalidTransition(StudyEngineError):
    """A session operation was called in a state that does not allow it."""


class DelegatedScoringUnavailable(StudyEngineError):
    """The reasoning capability is absent, failed, or returned unusable output."""


class EmptyAggregationInput(StudyEngineError, ValueError):
    """Learning-style aggregation was called with nothing to aggregate."""
