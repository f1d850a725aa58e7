"""Alert evaluation engine."""
import logging
import threading

from models.alerts import AlertEvent, parse_timestamp
from models.enums import Condition, Severity
from utils.formatters import format_reading

logger = logging.getLogger("farmmonitor.alerts.engine")


class FireState:
    """Last firing time per rule, used only for cooldown. Lives as long as the engine."""

    def __init__(self):
        self._last_fired = {}
        self._lock = threading.Lock()

    def last_fired(self, rule_id):
        return self._last_fired.get(rule_id)

    def try_fire(self, rule_id, cooldown_minutes, now):
        """Check the cooldown and record a firing in one step. Returns False when suppressed."""
        now = parse_timestamp(now)
        with self._lock:
            last = self._last_fired.get(rule_id)
            if last is not None:
                elapsed_minutes = (now - last).total_seconds() / 60
                if elapsed_minutes < cooldown_minutes:
                    return False
            self._last_fired[rule_id] = now
            return True

    def reset(self):
        with self._lock:
            self._last_fired.clear()


def condition_met(rule, value):
    if rule.condition == Condition.ABOVE:
        return value > rule.trigger_value
    if rule.condition == Condition.BELOW:
        return value < rule.trigger_value
    if rule.condition == Condition.OUTSIDE_RANGE:
        return value < rule.low or value > rule.high
    return False


def build_message(rule, value, unit=""):
    actual = format_reading(value, unit)
    if rule.condition == Condition.OUTSIDE_RANGE:
        band = f"{format_reading(rule.low)}-{format_reading(rule.high, unit)}"
        return f"{rule.sensor} outside {band} range ({actual})"
    limit = format_reading(rule.trigger_value, unit)
    return f"{rule.sensor} {rule.condition.value} {limit} threshold ({actual})"


def evaluate(reading, rules, fire_state, now, units=None):
    """Evaluate one reading against rules in list order.

    Returns new events (without ids). Readings with an unusable value or an
    unknown sensor produce nothing. A rule whose condition does not hold
    leaves fire_state untouched.
    """
    units = units or {}
    now = parse_timestamp(now)
    value = reading.numeric_value()
    if value is None:
        logger.debug(f"Ignoring non-numeric reading for {reading.sensor_key}: {reading.value!r}")
        return []

    events = []
    for rule in rules:
        if not rule.enabled or rule.sensor != reading.sensor_key:
            continue
        if not condition_met(rule, value):
            continue
        if not fire_state.try_fire(rule.id, rule.cooldown_minutes, now):
            logger.debug(f"Rule {rule.id} suppressed by {rule.cooldown_minutes:g} min cooldown")
            continue

        events.append(AlertEvent(
            timestamp=now,
            rule_id=rule.id,
            rule_name=rule.name,
            sensor=rule.sensor,
            sensor_value=value,
            severity=rule.severity,
            condition=rule.condition,
            trigger_value=rule.trigger_value,
            low=rule.low,
            high=rule.high,
            message=build_message(rule, value, units.get(rule.sensor, "")),
            channels=frozenset(rule.channels),
        ))
        logger.info(f"Rule {rule.id} fired: {events[-1].message}")
    return events


class AlertEngine:
    def __init__(self, rules_manager, lifecycle, dispatcher=None, units=None, fire_state=None):
        self.rules_manager = rules_manager
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher
        self.units = units or {}
        self.fire_state = fire_state or FireState()

    def process(self, reading, now=None):
        """Evaluate a reading, store what fires and hand it to the dispatcher."""
        now = now or reading.at
        events = evaluate(reading, self.rules_manager.get_all_rules(), self.fire_state, now, self.units)
        stored = []
        for event in events:
            stored_event = self.lifecycle.add(event)
            stored.append(stored_event)
            if self.dispatcher is not None:
                self.dispatcher.dispatch(stored_event)
        return stored

    def test_rules(self, reading):
        """Report for every rule whether this reading would fire it, ignoring cooldowns."""
        value = reading.numeric_value()
        results = []
        for rule in self.rules_manager.get_all_rules():
            applies = rule.sensor == reading.sensor_key and value is not None
            results.append({
                "rule_id": rule.id,
                "name": rule.name,
                "sensor": rule.sensor,
                "condition": rule.describe_condition(),
                "current_value": value if applies else None,
                "would_fire": applies and condition_met(rule, value),
                "severity": rule.severity.value,
                "enabled": rule.enabled,
            })
        return results

    def format_alert_summary(self, events):
        """Format alerts for display."""
        if not events:
            return "All clear - no alerts triggered."
        icons = {
            Severity.CRITICAL: "!!!",
            Severity.HIGH: "!!",
            Severity.MEDIUM: "!",
            Severity.LOW: "i",
        }
        lines = []
        for e in events:
            icon = icons.get(e.severity, "?")
            lines.append(f"[{icon}] [{e.severity.value.upper()}] {e.rule_name}: {e.message}")
        return "\n".join(lines)
