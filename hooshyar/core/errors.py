"""
Exception hierarchy for Hooshyar.

Every error raised towards the user carries a Persian ``user_message``
that the presentation layer shows as-is.
"""

from typing import Optional


class HooshyarError(Exception):
    """Base class for all application errors."""

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class InvalidInputError(HooshyarError):
    """The topic is empty or whitespace-only."""


class UpstreamFormatError(HooshyarError):
    """The generation service returned text that is not a valid answer."""


class UpstreamServiceError(HooshyarError):
    """Transport or service-side failure of the generation service."""

    def __init__(self, user_message: str, status_code: Optional[int] = None):
        super().__init__(user_message)
        self.status_code = status_code


class StaleResultDiscarded(Exception):
    """
    A search outcome arrived after a newer submission or a cancellation.

    Internal signal only; never shown to the user.
    """

    def __init__(self, token: int, current_token: int):
        super().__init__(f"search {token} superseded by {current_token}")
        self.token = token
        self.current_token = current_token
