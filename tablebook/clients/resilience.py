"""Resilience primitives: exception hierarchy, retry, circuit breaker, schema validation."""

import logging
import time
from enum import StrEnum

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


# ── Exception Hierarchy ──────────────────────────────────────────────────────


class APIError(Exception):
    """Base class for all reservation API errors.

    Args:
        message: Human-readable description.
        status_code: HTTP status when the error came from a response.
        server_message: ``message`` field of the response body, if any.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status_code: int | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message


class TransientAPIError(APIError):
    """Retriable errors (network failures, 429, 5xx)."""


class PermanentAPIError(APIError):
    """Non-retriable errors (403, 404, etc.)."""


class AuthError(PermanentAPIError):
    """Authentication/authorisation failure (401)."""


class ValidationAPIError(PermanentAPIError):
    """The API rejected the request payload (400, 422)."""


class ConflictError(PermanentAPIError):
    """The requested slot is no longer bookable (409)."""


class NotFoundError(PermanentAPIError):
    """The requested resource does not exist (404)."""


class SchemaChangeError(PermanentAPIError):
    """Remote API response shape changed unexpectedly."""


class CircuitOpenError(APIError):
    """Circuit breaker is open; calls are being shed."""


TRANSIENT_STATUS_CODES = {429, 500, 502, 503, 504}

# Error codes the API uses in 400 bodies when the slot was taken
CONFLICT_ERROR_CODES = {"SLOT_UNAVAILABLE", "NO_TABLES_AVAILABLE", "DOUBLE_BOOKING"}


# ── Response Classification ──────────────────────────────────────────────────


def _server_message(response: object) -> tuple[str | None, str | None]:
    """Return ``(message, code)`` from a JSON error body, if present."""
    try:
        body = response.json()  # type: ignore[attr-defined]
    except Exception:  # noqa: BLE001
        return None, None
    if not isinstance(body, dict):
        return None, None
    message = body.get("message") or body.get("error")
    code = body.get("code")
    return (
        str(message) if isinstance(message, str) else None,
        str(code) if code else None,
    )


def classify_response(response: object) -> None:
    """Raise an appropriate error based on HTTP status code.

    Args:
        response: An object with a ``status_code`` attribute (e.g. httpx.Response).

    Raises:
        AuthError: On 401.
        ConflictError: On 409, or a 400 whose body carries a conflict code.
        ValidationAPIError: On 400, 422.
        NotFoundError: On 404.
        PermanentAPIError: On other 4xx.
        TransientAPIError: On 429, 5xx.
    """
    status = getattr(response, "status_code", None)
    if status is None or 200 <= status < 400:
        return

    message, code = _server_message(response)
    kwargs = {"status_code": status, "server_message": message}

    if status == 401:
        raise AuthError(f"Authentication failed (HTTP {status})", **kwargs)
    if status == 409 or (code in CONFLICT_ERROR_CODES):
        raise ConflictError(f"Slot no longer available (HTTP {status})", **kwargs)
    if status in (400, 422):
        raise ValidationAPIError(f"Request rejected (HTTP {status})", **kwargs)
    if status == 404:
        raise NotFoundError(f"Not found (HTTP {status})", **kwargs)
    if status in TRANSIENT_STATUS_CODES:
        raise TransientAPIError(f"Transient error (HTTP {status})", **kwargs)
    if 400 <= status < 500:
        raise PermanentAPIError(f"Client error (HTTP {status})", **kwargs)
    raise TransientAPIError(f"Server error (HTTP {status})", **kwargs)


# ── Retry ─────────────────────────────────────────────────────────────────


def log_retry_attempt(retry_state: RetryCallState) -> None:
    """Tenacity ``before_sleep`` callback that logs each retry."""
    attempt = retry_state.attempt_number
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning("Retry attempt %d after error: %s", attempt, exc)


resilient_request = retry(
    retry=retry_if_exception_type(TransientAPIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    before_sleep=log_retry_attempt,
    reraise=True,
)
"""Tenacity decorator for retrying read-only fetches on ``TransientAPIError``.

Booking operations (availability checks inside the wizard, reservation
creation) are never wrapped: the guest retries them explicitly.
"""


# ── Circuit Breaker ──────────────────────────────────────────────────────────


class CircuitState(StrEnum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Lightweight async circuit breaker (no external dependency).

    Only transport-level failures count against the breaker; a rejected
    payload or a taken slot says nothing about the API's health.

    Args:
        name: Human-readable name for logging.
        fail_max: Consecutive failures before opening.
        reset_timeout: Seconds to wait before trying again (half-open).
    """

    def __init__(
        self, name: str, fail_max: int = 5, reset_timeout: float = 60.0
    ) -> None:
        self.name = name
        self.fail_max = fail_max
        self.reset_timeout = reset_timeout

        self._state = CircuitState.CLOSED
        self._fail_count = 0
        self._last_failure_time: float = 0.0

    @property
    def state(self) -> CircuitState:
        if self._state == CircuitState.OPEN:
            if time.monotonic() - self._last_failure_time >= self.reset_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def reset(self) -> None:
        """Force the breaker closed. Used in tests."""
        self._state = CircuitState.CLOSED
        self._fail_count = 0
        self._last_failure_time = 0.0

    async def call_async(self, coro):  # type: ignore[no-untyped-def]
        """Execute *coro*, applying circuit-breaker logic.

        Raises:
            CircuitOpenError: If the circuit is OPEN.
        """
        current = self.state
        if current == CircuitState.OPEN:
            coro.close()
            raise CircuitOpenError(f"Circuit '{self.name}' is open")

        try:
            result = await coro
        except TransientAPIError:
            self._fail_count += 1
            self._last_failure_time = time.monotonic()
            if self._fail_count >= self.fail_max:
                self._state = CircuitState.OPEN
                logger.warning("Circuit '%s' opened after %d failures", self.name, self._fail_count)
            elif current == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("Circuit '%s' re-opened on half-open failure", self.name)
            raise

        # Success resets the count
        self._fail_count = 0
        self._state = CircuitState.CLOSED
        return result


# Pre-configured breaker shared by every call to the reservation API
reservation_api_breaker = CircuitBreaker("reservation_api", fail_max=5, reset_timeout=60.0)


# ── Schema Validation ────────────────────────────────────────────────────────


def validate_envelope_schema(data: object, what: str) -> object:
    """Validate the ``{"data": ...}`` envelope and return its payload.

    Raises:
        SchemaChangeError: If the envelope is missing.
    """
    if not isinstance(data, dict):
        raise SchemaChangeError(f"Expected dict for {what} response")
    if "data" not in data:
        raise SchemaChangeError(f"Missing keys in {what}: {{'data'}}")
    return data["data"]


def validate_availability_schema(data: object) -> list:
    """Validate an availability response and return its raw slot list.

    Accepts ``data.timeSlots`` (slot objects) or ``data.availableSlots``
    (bare time strings).

    Raises:
        SchemaChangeError: If neither slot list is present.
    """
    payload = validate_envelope_schema(data, "availability")
    if not isinstance(payload, dict):
        raise SchemaChangeError("Expected dict payload for availability response")
    if "timeSlots" in payload:
        slots = payload["timeSlots"]
    elif "availableSlots" in payload:
        slots = payload["availableSlots"]
    else:
        raise SchemaChangeError(
            "Missing keys in availability: {'timeSlots'} or {'availableSlots'}"
        )
    if not isinstance(slots, list):
        raise SchemaChangeError("Expected list of slots in availability response")
    return slots


def validate_reservation_schema(data: object) -> dict:
    """Validate a reservation response and return the reservation dict.

    Raises:
        SchemaChangeError: If ``id`` or ``confirmationCode`` is missing.
    """
    payload = validate_envelope_schema(data, "reservation")
    if not isinstance(payload, dict):
        raise SchemaChangeError("Expected dict payload for reservation response")
    required = {"id", "confirmationCode"}
    missing = required - payload.keys()
    if missing:
        raise SchemaChangeError(f"Missing keys in reservation: {missing}")
    return payload
