"""Error taxonomy shared by the storefront and tracking contexts.

Rejected operations are Protean ``ValidationError``s carrying the usual
``{field: [messages]}`` dict, and missing records are Protean
``ObjectNotFoundError``s. Parsing and pricing errors (InvalidPriceFormat,
StageDecodeFailure) are absorbed close to where they are raised and replaced
with a safe default. Everything else is surfaced to the caller.
"""

from typing import Any

from protean.exceptions import ObjectNotFoundError, ValidationError


class FarmGateError(Exception):
    """Base exception for FarmGate errors that are not domain validation failures."""

    pass


class InvalidPriceFormat(FarmGateError):
    """Raised when a price value contains no usable digits."""

    def __init__(self, raw_value: Any):
        self.raw_value = raw_value
        super().__init__(f"Cannot read a price from {raw_value!r}")


class StageDecodeFailure(FarmGateError):
    """Raised when a persisted stage history cannot be decoded."""

    def __init__(self, message: str, raw_value: Any = None, original_error: Exception | None = None):
        self.raw_value = raw_value
        self.original_error = original_error

        if original_error:
            message = f"{message} (Original error: {original_error})"

        super().__init__(message)


class AccessDenied(FarmGateError):
    """Raised when the caller does not own the order it is acting on."""

    def __init__(self, order_id: str | None, user_id: str | None, message: str | None = None):
        self.order_id = order_id
        self.user_id = user_id
        super().__init__(message or f"User {user_id!r} may not access order {order_id!r}")


class NotFound(ObjectNotFoundError):
    """Raised when an identifier has no matching authoritative record."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        self.message = f"{kind} {identifier!r} not found"
        super().__init__({kind.lower(): [self.message]})

    def __str__(self):
        return self.message


class TransitionFailed(FarmGateError):
    """Raised when a stage transition could not be persisted.

    The caller's order is left untouched; retrying or re-fetching is safe.
    """

    retryable = True

    def __init__(self, order_id: str, action: str, reason: str):
        self.order_id = order_id
        self.action = action
        self.reason = reason
        super().__init__(f"Cannot {action} order {order_id!r}: {reason}")


class TransitionRejected(ValidationError):
    """Raised when the order's current stages do not allow the transition."""

    retryable = False

    def __init__(self, order_id: str, action: str, reason: str):
        self.order_id = order_id
        self.action = action
        self.reason = reason
        self.message = f"Cannot {action} order {order_id!r}: {reason}"
        super().__init__({"stages": [reason]})

    def __str__(self):
        return self.message


class CheckoutRejected(ValidationError):
    """Raised when a cart cannot be turned into an order."""

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        details = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        self.message = f"Checkout rejected ({details})"
        super().__init__(errors)

    def __str__(self):
        return self.message


class StoreError(FarmGateError):
    """Raised by storage adapters when the remote store cannot be reached."""

    pass
