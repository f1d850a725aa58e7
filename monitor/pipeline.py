"""Reading ingestion: classify for display, then run alert rules.

Readings for one sensor are processed one at a time so cooldowns and event
order stay consistent; different sensors may be ingested from different
threads.
"""
import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from models.alerts import Reading
from models.thresholds import SensorStatus

logger = logging.getLogger("farmmonitor.monitor.pipeline")


@dataclass
class IngestResult:
    status: Optional[SensorStatus] = None
    events: list = field(default_factory=list)


class FarmMonitor:
    def __init__(self, thresholds, engine):
        self.thresholds = thresholds
        self.engine = engine
        self._latest = {}
        self._sensor_locks = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, sensor_key):
        with self._locks_guard:
            lock = self._sensor_locks.get(sensor_key)
            if lock is None:
                lock = self._sensor_locks[sensor_key] = threading.Lock()
            return lock

    def ingest(self, reading):
        with self._lock_for(reading.sensor_key):
            status = self.thresholds.classify_reading(reading)
            if status is not None:
                self._latest[status.sensor_id] = status
            elif self.thresholds.resolve(reading.sensor_key) is None:
                logger.debug(f"Reading for unconfigured sensor {reading.sensor_key}")
            events = self.engine.process(reading)
        return IngestResult(status=status, events=events)

    def ingest_many(self, readings):
        return [self.ingest(r) for r in readings]

    def latest(self):
        """Latest classified reading per sensor, in threshold order."""
        ordered = []
        for t in self.thresholds.get_all():
            status = self._latest.get(t.id)
            if status is not None:
                ordered.append(status)
        return ordered


def load_readings(path):
    """Read a JSON-lines file of ``{"sensorKey", "value", "at"}`` objects."""
    readings = []
    with open(Path(path), encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                readings.append(Reading.from_dict(json.loads(line)))
            except ValueError as e:
                raise ValueError(f"{path}:{lineno}: {e}") from e
    return readings
