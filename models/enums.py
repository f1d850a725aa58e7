"""Enums for severity, rule conditions, alert status, channels and classification."""
from enum import Enum

from models.errors import ConfigurationError


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Condition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    OUTSIDE_RANGE = "outside_range"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    IN_APP = "inApp"


class Classification(str, Enum):
    OPTIMAL = "optimal"
    WARNING = "warning"


class TolerancePolicy(str, Enum):
    # strict: [min, max] only. widen: [min - tolerance, max + tolerance]
    STRICT = "strict"
    WIDEN = "widen"


class Frequency(str, Enum):
    IMMEDIATE = "immediate"
    HOURLY = "hourly"
    DAILY = "daily"


FREQUENCY_SECONDS = {
    Frequency.IMMEDIATE: 0,
    Frequency.HOURLY: 3600,
    Frequency.DAILY: 86400,
}


def coerce_enum(enum_cls, value, field_name):
    """Return ``value`` as a member of ``enum_cls`` or raise ConfigurationError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(f"Invalid {field_name} {value!r} (expected one of: {allowed})")
