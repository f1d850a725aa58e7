"""Sensor threshold loading, operator edits and reading classification."""
import copy
import logging
import threading
from dataclasses import replace, fields
from pathlib import Path

import yaml

from models.enums import Classification, TolerancePolicy, coerce_enum
from models.errors import ConfigurationError
from models.thresholds import SensorThreshold, SensorStatus

logger = logging.getLogger("farmmonitor.alerts.thresholds")

_EDITABLE_FIELDS = {f.name for f in fields(SensorThreshold)} - {"id"}


def acceptable_band(threshold, policy=TolerancePolicy.STRICT):
    """Return the (low, high) band a reading must fall in to count as optimal."""
    policy = coerce_enum(TolerancePolicy, policy, "tolerance policy")
    if policy == TolerancePolicy.WIDEN:
        return threshold.min - threshold.tolerance, threshold.max + threshold.tolerance
    return threshold.min, threshold.max


def classify(value, threshold, policy=TolerancePolicy.STRICT):
    """Classify one reading against a sensor band.

    Disabled sensors are never flagged. Under the default ``strict`` policy
    tolerance is advisory only and the band is [min, max] inclusive.
    """
    if not threshold.enabled:
        return Classification.OPTIMAL
    low, high = acceptable_band(threshold, policy)
    if low <= value <= high:
        return Classification.OPTIMAL
    return Classification.WARNING


class ThresholdManager:
    def __init__(self, thresholds_path="config/thresholds.yaml", policy=TolerancePolicy.STRICT):
        self.thresholds_path = Path(thresholds_path) if thresholds_path else None
        self.policy = coerce_enum(TolerancePolicy, policy, "tolerance policy")
        self._thresholds = {}
        self._defaults = {}
        self._lock = threading.Lock()
        self.load()

    @classmethod
    def from_list(cls, thresholds, policy=TolerancePolicy.STRICT):
        """Build a manager from already-constructed thresholds (no file)."""
        manager = cls(thresholds_path=None, policy=policy)
        for t in thresholds:
            manager._add(t)
        manager._defaults = copy.deepcopy(manager._thresholds)
        return manager

    def load(self):
        if self.thresholds_path is None:
            return
        if not self.thresholds_path.exists():
            logger.warning(f"Thresholds file not found: {self.thresholds_path}")
            return
        with open(self.thresholds_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        parsed = [SensorThreshold.from_dict(raw) for raw in data.get("thresholds", [])]
        with self._lock:
            self._thresholds = {}
            for t in parsed:
                self._add(t)
            self._defaults = copy.deepcopy(self._thresholds)
        logger.info(f"Loaded {len(self._thresholds)} sensor thresholds")

    def _add(self, threshold):
        if threshold.id in self._thresholds:
            raise ConfigurationError(f"Duplicate threshold for sensor {threshold.id}")
        self._thresholds[threshold.id] = threshold

    def get(self, sensor_id):
        return self._thresholds.get(sensor_id)

    def get_all(self):
        return list(self._thresholds.values())

    def get_enabled(self):
        return [t for t in self._thresholds.values() if t.enabled]

    def sensor_keys(self):
        """Every name a reading or rule may use to refer to a configured sensor."""
        keys = set()
        for t in self._thresholds.values():
            keys.add(t.id)
            keys.add(t.name)
        return keys

    def resolve(self, sensor_key):
        """Find a threshold by sensor id or display name."""
        found = self._thresholds.get(sensor_key)
        if found is not None:
            return found
        for t in self._thresholds.values():
            if t.name == sensor_key:
                return t
        return None

    def update(self, sensor_id, **changes):
        """Apply an operator edit. The edited threshold is validated before it replaces the old one."""
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ConfigurationError(f"Cannot edit threshold field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            current = self._thresholds.get(sensor_id)
            if current is None:
                raise ConfigurationError(f"Unknown sensor: {sensor_id}")
            updated = replace(current, **changes)
            self._thresholds[sensor_id] = updated
        logger.info(f"Threshold {sensor_id} updated: {changes}")
        return updated

    def set_enabled(self, sensor_id, enabled):
        return self.update(sensor_id, enabled=enabled)

    def reset_defaults(self):
        with self._lock:
            self._thresholds = copy.deepcopy(self._defaults)
        logger.info("Thresholds reset to defaults")

    def classify_reading(self, reading):
        """Classify a reading for display; None when the sensor is unknown or the value is unusable."""
        threshold = self.resolve(reading.sensor_key)
        value = reading.numeric_value()
        if threshold is None or value is None:
            return None
        return SensorStatus(
            sensor_id=threshold.id,
            name=threshold.name,
            value=value,
            unit=threshold.unit,
            classification=classify(value, threshold, self.policy),
            at=reading.at,
        )
