"""Errors raised by admin-facing services."""


class Unauthorized(Exception):
    """Mutation attempted without a valid admin session."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationError(Exception):
    """Request rejected before any write, with a message for the admin."""
    pass
