"""
Lifecycle error taxonomy.
Each error carries an HTTP status and a stable code; main.py renders them as
{"error": message, "code": code}.
"""


class LifecycleError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(LifecycleError):
    """Task id does not resolve under the caller's ownership."""
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(LifecycleError):
    """The request can't be applied as given; nothing was changed."""
    status_code = 400
    code = "VALIDATION_ERROR"


class RateLimited(LifecycleError):
    status_code = 429
    code = "RATE_LIMITED"


class PersistenceFailure(LifecycleError):
    """Storage rejected the primary write. Safe to try again."""
    status_code = 503
    code = "PERSISTENCE_UNAVAILABLE"


class RaceNoOp(LifecycleError):
    """
    Internal signal: the conditional write matched zero rows because another
    request already applied the transition. Resolved by re-reading, never
    returned to a caller.
    """
    status_code = 409
    code = "ALREADY_APPLIED"
