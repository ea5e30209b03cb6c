"""
Exceptions raised by the epoch scoring pipeline.

Every fatal error aborts the whole epoch update; nothing is applied per
validator.
"""


class ScoringPipelineError(Exception):
    """Base class for all pipeline failures"""


class MalformedInputError(ScoringPipelineError, ValueError):
    """The epoch export (or records derived from it) cannot be used as-is.

    Raised before any store mutation.
    """


ParseError = MalformedInputError


class ReferencePopulationEmptyError(ScoringPipelineError):
    """No records above the minimum-credits floor to compute positions against"""


class StoreWriteError(ScoringPipelineError):
    """The historical store rejected a write; the epoch transaction was rolled back"""
