"""Dataclasses for sensor target bands and classified readings."""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.enums import Priority, Classification, coerce_enum
from models.errors import ConfigurationError


def to_number(value, field_name):
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{field_name} must be a number, got {value!r}")
    if math.isnan(number):
        raise ConfigurationError(f"{field_name} must not be NaN")
    return number


_BOOL_STRINGS = {"true": True, "false": False}


def to_bool(value, field_name):
    """Accept a real bool or the strings "true"/"false"; anything else is a config error."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOL_STRINGS:
        return _BOOL_STRINGS[value.strip().lower()]
    raise ConfigurationError(f"{field_name} must be true or false, got {value!r}")


@dataclass
class SensorThreshold:
    id: str = ""
    name: str = ""
    unit: str = ""
    min: float = 0.0
    max: float = 0.0
    tolerance: float = 0.0
    enabled: bool = True
    priority: Priority = Priority.MEDIUM

    def __post_init__(self):
        if not self.id:
            raise ConfigurationError("Threshold is missing a sensor id")
        self.name = self.name or self.id
        self.min = to_number(self.min, f"{self.id}.min")
        self.max = to_number(self.max, f"{self.id}.max")
        self.tolerance = to_number(self.tolerance, f"{self.id}.tolerance")
        self.priority = coerce_enum(Priority, self.priority, f"{self.id}.priority")
        self.enabled = to_bool(self.enabled, f"{self.id}.enabled")
        if self.min > self.max:
            raise ConfigurationError(f"Threshold {self.id}: min {self.min} exceeds max {self.max}")
        if self.tolerance < 0:
            raise ConfigurationError(f"Threshold {self.id}: tolerance must be >= 0")

    @classmethod
    def from_dict(cls, raw):
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Threshold entry must be a mapping, got {raw!r}")
        if "min" not in raw or "max" not in raw:
            raise ConfigurationError(f"Threshold {raw.get('id')!r} needs both min and max")
        return cls(
            id=raw.get("id", ""),
            name=raw.get("name", ""),
            unit=raw.get("unit", ""),
            min=raw["min"],
            max=raw["max"],
            tolerance=raw.get("tolerance", 0.0),
            enabled=raw.get("enabled", True),
            priority=raw.get("priority", "medium"),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "min": self.min,
            "max": self.max,
            "tolerance": self.tolerance,
            "enabled": self.enabled,
            "priority": self.priority.value,
        }


@dataclass
class SensorStatus:
    """A reading classified against its sensor's band, for live display."""
    sensor_id: str = ""
    name: str = ""
    value: float = 0.0
    unit: str = ""
    classification: Classification = Classification.OPTIMAL
    at: Optional[datetime] = None

    def to_dict(self):
        return {
            "sensor_id": self.sensor_id,
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "status": self.classification.value,
            "at": self.at.isoformat() if self.at else None,
        }
