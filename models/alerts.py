"""Dataclasses for alert rules, sensor readings and alert events."""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.enums import Severity, Condition, AlertStatus, Channel, coerce_enum
from models.errors import ConfigurationError
from models.thresholds import to_bool, to_number


def parse_channels(raw):
    """Accept ``{"email": True, ...}`` or ``["email", "inApp"]`` and return a frozenset of Channel."""
    if raw is None:
        return frozenset()
    if isinstance(raw, dict):
        names = [name for name, on in raw.items() if on]
    elif isinstance(raw, (list, tuple, set, frozenset)):
        names = list(raw)
    else:
        raise ConfigurationError(f"Invalid notification channels: {raw!r}")
    return frozenset(coerce_enum(Channel, name, "notification channel") for name in names)


def parse_timestamp(value):
    """Parse an ISO-8601 string or datetime; naive values are taken as UTC."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class AlertRule:
    id: str = ""
    name: str = ""
    sensor: str = ""
    condition: Condition = Condition.ABOVE
    trigger_value: Optional[float] = None
    severity: Severity = Severity.MEDIUM
    enabled: bool = True
    channels: frozenset = field(default_factory=frozenset)
    cooldown_minutes: float = 15
    low: Optional[float] = None
    high: Optional[float] = None
    description: str = ""

    def __post_init__(self):
        if not self.id:
            raise ConfigurationError("Alert rule is missing an id")
        if not self.sensor:
            raise ConfigurationError(f"Rule {self.id} does not reference a sensor")
        self.name = self.name or self.id
        self.condition = coerce_enum(Condition, self.condition, f"{self.id}.condition")
        self.severity = coerce_enum(Severity, self.severity, f"{self.id}.severity")
        self.channels = parse_channels(self.channels)
        self.enabled = to_bool(self.enabled, f"{self.id}.enabled")

        self.cooldown_minutes = to_number(self.cooldown_minutes, f"{self.id}.cooldown_minutes")
        if self.cooldown_minutes < 0:
            raise ConfigurationError(f"Rule {self.id}: cooldown_minutes must be >= 0")

        if self.condition == Condition.OUTSIDE_RANGE:
            if self.low is None or self.high is None:
                raise ConfigurationError(
                    f"Rule {self.id}: outside_range needs an explicit low and high"
                )
            self.low = to_number(self.low, f"{self.id}.low")
            self.high = to_number(self.high, f"{self.id}.high")
            if self.low > self.high:
                raise ConfigurationError(f"Rule {self.id}: low {self.low} exceeds high {self.high}")
        else:
            if self.trigger_value is None:
                raise ConfigurationError(f"Rule {self.id}: {self.condition.value} needs a trigger value")
            self.trigger_value = to_number(self.trigger_value, f"{self.id}.trigger_value")

    @classmethod
    def from_dict(cls, raw):
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Rule entry must be a mapping, got {raw!r}")
        low, high = raw.get("low"), raw.get("high")
        if "range" in raw:
            rng = raw["range"]
            if not isinstance(rng, (list, tuple)) or len(rng) != 2:
                raise ConfigurationError(f"Rule {raw.get('id')!r}: range must be [low, high]")
            low, high = rng
        return cls(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            sensor=raw.get("sensor", ""),
            condition=raw.get("condition", "above"),
            trigger_value=raw.get("trigger_value", raw.get("value")),
            severity=raw.get("severity", "medium"),
            enabled=raw.get("enabled", True),
            channels=raw.get("channels", raw.get("notifications")),
            cooldown_minutes=raw.get("cooldown_minutes", raw.get("cooldown", 15)),
            low=low,
            high=high,
            description=raw.get("description", ""),
        )

    def describe_condition(self):
        if self.condition == Condition.OUTSIDE_RANGE:
            return f"{self.sensor} outside {self.low:g}-{self.high:g}"
        return f"{self.sensor} {self.condition.value} {self.trigger_value:g}"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "sensor": self.sensor,
            "condition": self.condition.value,
            "trigger_value": self.trigger_value,
            "low": self.low,
            "high": self.high,
            "severity": self.severity.value,
            "enabled": self.enabled,
            "channels": sorted(c.value for c in self.channels),
            "cooldown_minutes": self.cooldown_minutes,
            "description": self.description,
        }


@dataclass
class Reading:
    sensor_key: str = ""
    value: Optional[float] = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        # naive times are taken as UTC so they compare with aware ones
        self.at = parse_timestamp(self.at) if self.at is not None else datetime.now(timezone.utc)

    @classmethod
    def from_dict(cls, raw):
        """Build a reading from ingestion payloads. Raises ValueError on malformed input."""
        if not isinstance(raw, dict):
            raise ValueError(f"Reading must be a mapping, got {raw!r}")
        key = raw.get("sensorKey", raw.get("sensor_key", raw.get("sensor")))
        if not key:
            raise ValueError("Reading is missing a sensor key")
        value = raw.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Reading value must be numeric, got {value!r}")
        at = raw.get("at")
        return cls(
            sensor_key=str(key),
            value=float(value),
            at=parse_timestamp(at) if at is not None else datetime.now(timezone.utc),
        )

    def numeric_value(self):
        """The value as a finite float, or None when it cannot be evaluated."""
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            return None
        value = float(self.value)
        if math.isnan(value) or math.isinf(value):
            return None
        return value


@dataclass
class AlertEvent:
    """One firing of a rule. Rule fields are copied at fire time."""
    id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    rule_id: str = ""
    rule_name: str = ""
    sensor: str = ""
    sensor_value: float = 0.0
    severity: Severity = Severity.MEDIUM
    condition: Condition = Condition.ABOVE
    trigger_value: Optional[float] = None
    low: Optional[float] = None
    high: Optional[float] = None
    message: str = ""
    channels: frozenset = field(default_factory=frozenset)
    status: AlertStatus = AlertStatus.ACTIVE
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "sensor": self.sensor,
            "sensor_value": self.sensor_value,
            "severity": self.severity.value,
            "condition": self.condition.value,
            "trigger_value": self.trigger_value,
            "low": self.low,
            "high": self.high,
            "message": self.message,
            "channels": sorted(c.value for c in self.channels),
            "status": self.status.value,
            "acknowledged_by": self.acknowledged_by,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
        }
