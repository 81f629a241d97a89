# fiscal_tracker/domain/errors.py
"""Exceptions raised by the obligation engine for programming errors.

Malformed data coming from storage never raises: the engine logs it and
degrades. These are reserved for callers passing values that cannot mean
anything (a step name that does not exist, a period string that is not
``YYYY-MM``).
"""


class InvalidPeriodError(ValueError):
    """Raised when a period string is not a valid ``YYYY-MM`` month."""
    pass


class UnknownStepError(ValueError):
    """Raised when a VAT workflow step name is not one of the six steps."""
    pass
