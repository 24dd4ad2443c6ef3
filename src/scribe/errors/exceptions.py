"""Exception hierarchy for the dispatcher and its management API."""


class ScribeError(Exception):
    """Base exception for Scribe Dispatch."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ScribeError):
    """Request or event payload validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class UnknownEventTypeError(ScribeError):
    """An event type outside the closed event taxonomy was dispatched."""

    def __init__(self, event_type: str):
        super().__init__(
            "UNKNOWN_EVENT_TYPE",
            f"Unknown event type '{event_type}'",
            details={"event_type": event_type},
            status_code=400,
        )


class ConfigurationError(ScribeError):
    """Subscriber or channel configuration rejected at registration time."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFIGURATION_ERROR", message, details, status_code=400)


class NotFoundError(ScribeError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class InvalidTransitionError(ScribeError):
    """A delivery attempt was moved along an edge the state machine does not allow."""

    def __init__(self, attempt_id: str, current: str, target: str):
        super().__init__(
            "INVALID_TRANSITION",
            f"Delivery attempt '{attempt_id}' cannot move from {current} to {target}",
            details={"attempt_id": attempt_id, "from": current, "to": target},
        )
