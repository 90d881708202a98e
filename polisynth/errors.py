"""Structured error hierarchy for polisynth."""


class PolisynthError(Exception):
    """Base for all polisynth errors."""

    pass


class EventValidationError(PolisynthError):
    """An analysis event failed acceptance checks."""

    def __init__(self, event_id: str, reason: str):
        self.event_id = event_id
        self.reason = reason
        super().__init__(f"Rejected event {event_id}: {reason}")


class ConfigurationError(PolisynthError):
    """Operator-supplied setting is out of range."""

    pass
