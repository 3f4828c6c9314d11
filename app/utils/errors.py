"""Error taxonomy for goal operations."""


class GoalServiceError(ValueError):
    """Base class for errors raised by the goal services."""

    status_code = 400


class NotFoundError(GoalServiceError):
    """Goal, parent or domain does not exist."""

    status_code = 404


class UnauthorizedError(GoalServiceError):
    """The acting user does not own the record."""

    status_code = 403


class InvalidArgumentError(GoalServiceError):
    """Out-of-range period, empty title, invalid nesting and the like."""

    status_code = 400


class InvalidStateError(GoalServiceError):
    """A computed value failed structural validation. Never expected."""

    status_code = 500
