"""Data models."""
from models.enums import (
    Severity, Priority, Condition, AlertStatus, Channel, Classification, TolerancePolicy, Frequency,
)
from models.errors import AlertError, ConfigurationError, NotFound, InvalidTransition
from models.thresholds import SensorThreshold, SensorStatus
from models.alerts import AlertRule, Reading, AlertEvent
