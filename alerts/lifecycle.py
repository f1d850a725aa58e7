"""Alert event store and its active → acknowledged → resolved state machine."""
import itertools
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone

from models.alerts import parse_timestamp
from models.enums import AlertStatus, Severity, coerce_enum
from models.errors import NotFound, InvalidTransition

logger = logging.getLogger("farmmonitor.alerts.lifecycle")

UNKNOWN_ACTOR = "Unknown User"


class AlertLifecycleManager:
    """Sole owner of alert events.

    Callers only ever receive copies; every transition is checked and
    applied under one lock so concurrent acknowledge/resolve calls on the
    same event serialize and the loser sees InvalidTransition.
    """

    def __init__(self):
        self._events = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, event):
        """Store a newly fired event as active and return a copy with its id."""
        with self._lock:
            stored = replace(
                event,
                id=str(next(self._ids)),
                timestamp=parse_timestamp(event.timestamp),
                status=AlertStatus.ACTIVE,
                acknowledged_by=None,
                resolved_at=None,
            )
            self._events[stored.id] = stored
        return replace(stored)

    def get(self, event_id):
        with self._lock:
            event = self._events.get(str(event_id))
            if event is None:
                raise NotFound(event_id)
            return replace(event)

    def acknowledge(self, event_id, actor):
        actor = actor or UNKNOWN_ACTOR
        with self._lock:
            event = self._require(event_id)
            if event.status != AlertStatus.ACTIVE:
                logger.warning(f"Rejected acknowledge of alert {event_id} ({event.status.value})")
                raise InvalidTransition(event_id, event.status, AlertStatus.ACKNOWLEDGED)
            event.status = AlertStatus.ACKNOWLEDGED
            event.acknowledged_by = actor
            result = replace(event)
        logger.info(f"Alert {event_id} acknowledged by {actor}")
        return result

    def resolve(self, event_id, at=None):
        at = parse_timestamp(at) if at is not None else datetime.now(timezone.utc)
        with self._lock:
            event = self._require(event_id)
            if event.status == AlertStatus.RESOLVED:
                logger.warning(f"Rejected resolve of alert {event_id} (already resolved)")
                raise InvalidTransition(event_id, event.status, AlertStatus.RESOLVED)
            event.status = AlertStatus.RESOLVED
            event.resolved_at = at
            result = replace(event)
        logger.info(f"Alert {event_id} resolved")
        return result

    def _require(self, event_id):
        event = self._events.get(str(event_id))
        if event is None:
            raise NotFound(event_id)
        return event

    def list(self, search=None, severity=None, status=None):
        """Events matching every given filter, newest first.

        ``search`` is a case-insensitive substring match on rule name or sensor.
        """
        severity = coerce_enum(Severity, severity, "severity") if severity else None
        status = coerce_enum(AlertStatus, status, "status") if status else None
        needle = search.lower() if search else None

        with self._lock:
            events = [replace(e) for e in self._events.values()]

        matches = []
        for e in events:
            if needle and needle not in e.rule_name.lower() and needle not in e.sensor.lower():
                continue
            if severity and e.severity != severity:
                continue
            if status and e.status != status:
                continue
            matches.append(e)
        matches.sort(key=lambda e: (e.timestamp, int(e.id)), reverse=True)
        return matches

    def summary(self):
        """Count of events per status, for the dashboard summary cards."""
        counts = {s.value: 0 for s in AlertStatus}
        with self._lock:
            for e in self._events.values():
                counts[e.status.value] += 1
        counts["total"] = sum(counts.values())
        return counts

    def active_count(self):
        return self.summary()[AlertStatus.ACTIVE.value]

    def __len__(self):
        return len(self._events)
