"""User-friendly error messages and safe tool wrapper."""

import logging

from tablebook.clients.resilience import (
    AuthError,
    CircuitOpenError,
    ConflictError,
    NotFoundError,
    PermanentAPIError,
    SchemaChangeError,
    TransientAPIError,
    ValidationAPIError,
)
from tablebook.display.reservations import InvalidTransitionError, PermissionDeniedError
from tablebook.wizard.errors import InvalidQueryError
from tablebook.wizard.sessions import SessionNotFoundError

logger = logging.getLogger(__name__)


def get_user_message(error: Exception, context: dict | None = None) -> str:
    """Map an exception to a user-friendly message.

    Args:
        error: The exception to translate.
        context: Optional dict with extra info (e.g. {"restaurant": "Sakura"}).

    Returns:
        A human-readable error message.
    """
    restaurant = (context or {}).get("restaurant", "the restaurant")

    if isinstance(error, SessionNotFoundError):
        return (
            f"No booking in progress with id {error.args[0]}. "
            "Start a new one with start_booking."
        )
    if isinstance(error, InvalidQueryError):
        return str(error)
    if isinstance(error, (InvalidTransitionError, PermissionDeniedError)):
        return str(error)
    if isinstance(error, AuthError):
        return (
            "The reservation service rejected our credentials. "
            "Check the API_TOKEN setting."
        )
    if isinstance(error, ConflictError):
        return error.server_message or "That time is no longer available."
    if isinstance(error, ValidationAPIError):
        return error.server_message or "The reservation service rejected the request."
    if isinstance(error, NotFoundError):
        return f"Could not find {restaurant}."
    if isinstance(error, SchemaChangeError):
        return (
            "The reservation service returned an unexpected response. "
            "Please try again later."
        )
    if isinstance(error, CircuitOpenError):
        return (
            "The reservation service is temporarily unavailable. "
            "Please try again in a few minutes."
        )
    if isinstance(error, TransientAPIError):
        return (
            f"There was a temporary issue reaching {restaurant}'s booking service. "
            "Please try again shortly."
        )
    if isinstance(error, PermanentAPIError):
        return f"Could not complete the request for {restaurant}. {error}"
    return "Something went wrong. Please try again."


async def safe_tool_wrapper(
    func,  # type: ignore[no-untyped-def]
    *args: object,
    context: dict | None = None,
    **kwargs: object,
) -> str:
    """Call an async function, catching errors and returning friendly messages.

    Args:
        func: Async callable to invoke.
        *args: Positional arguments for *func*.
        context: Optional context dict for error messages.
        **kwargs: Keyword arguments for *func*.

    Returns:
        The function's return value on success, or a user-friendly error string.
    """
    try:
        return await func(*args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Tool error in %s", func.__name__)
        return get_user_message(exc, context)
