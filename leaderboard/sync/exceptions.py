"""Errors raised by the live update path."""


class ChannelError(Exception):
    """The push channel failed or delivered an unusable payload."""
    pass
