"""Exception types raised by the alert core."""


class AlertError(Exception):
    """Base class for alert core errors."""


class ConfigurationError(AlertError):
    """A threshold or rule definition is malformed."""


class NotFound(AlertError):
    def __init__(self, event_id):
        self.event_id = event_id
        super().__init__(f"Alert event not found: {event_id}")


class InvalidTransition(AlertError):
    def __init__(self, event_id, current, target):
        self.event_id = event_id
        self.current = current
        self.target = target
        cur = current.value if hasattr(current, "value") else current
        tgt = target.value if hasattr(target, "value") else target
        super().__init__(f"Alert {event_id} cannot move from {cur} to {tgt}")
