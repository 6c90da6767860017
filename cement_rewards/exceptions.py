"""Error taxonomy for the points workflow.

Every error derives from ``ValueError`` so callers that only care about
"the request was refused" can keep catching that, while the API layer maps
each class to an HTTP status code.
"""


class RewardsError(ValueError):
    status_code = 400


class ValidationError(RewardsError):
    """Input rejected before any mutation."""


class InsufficientPointsError(ValidationError):
    pass


class InvalidBagCountError(ValidationError):
    pass


class MissingDealerError(ValidationError):
    pass


class NotFoundError(RewardsError):
    status_code = 404


class PermissionDeniedError(RewardsError):
    status_code = 403


class InvalidTransitionError(RewardsError):
    """The requested status change is not in the transition table."""
    status_code = 409


class StaleStateError(RewardsError):
    """The row changed between read and conditional write."""
    status_code = 409
