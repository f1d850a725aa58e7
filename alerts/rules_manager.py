"""Alert rules loading and management."""
import logging
import threading
from dataclasses import replace, fields
from pathlib import Path

import yaml

from models.alerts import AlertRule
from models.enums import Channel, coerce_enum
from models.errors import ConfigurationError

logger = logging.getLogger("farmmonitor.alerts.rules")

_EDITABLE_FIELDS = {f.name for f in fields(AlertRule)} - {"id"}


class RulesManager:
    def __init__(self, rules_path="config/alerts_rules.yaml", known_sensors=None):
        self.rules_path = Path(rules_path) if rules_path else None
        self.known_sensors = set(known_sensors) if known_sensors is not None else None
        self.rules = []
        self._lock = threading.Lock()
        self.load()

    @classmethod
    def from_list(cls, rules, known_sensors=None):
        manager = cls(rules_path=None, known_sensors=known_sensors)
        for rule in rules:
            manager.register(rule)
        return manager

    def load(self):
        if self.rules_path is None:
            return
        if not self.rules_path.exists():
            logger.warning(f"Alert rules file not found: {self.rules_path}")
            return
        with open(self.rules_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        parsed = self._parse_rules(data.get("rules", []))
        with self._lock:
            self.rules = parsed
        logger.info(f"Loaded {len(self.rules)} rules")

    def _parse_rules(self, raw_rules):
        rules = []
        seen = set()
        for r in raw_rules:
            rule = AlertRule.from_dict(r)
            self._check_rule(rule)
            if rule.id in seen:
                raise ConfigurationError(f"Duplicate rule id: {rule.id}")
            seen.add(rule.id)
            rules.append(rule)
        return rules

    def _check_rule(self, rule):
        if self.known_sensors is not None and rule.sensor not in self.known_sensors:
            raise ConfigurationError(f"Rule {rule.id} references unknown sensor: {rule.sensor}")

    def register(self, rule):
        """Add a new rule; rejected with ConfigurationError if invalid or the id is taken."""
        if isinstance(rule, dict):
            rule = AlertRule.from_dict(rule)
        self._check_rule(rule)
        with self._lock:
            if any(r.id == rule.id for r in self.rules):
                raise ConfigurationError(f"Duplicate rule id: {rule.id}")
            self.rules = self.rules + [rule]
        logger.info(f"Registered rule {rule.id}: {rule.describe_condition()}")
        return rule

    def update(self, rule_id, **changes):
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ConfigurationError(f"Cannot edit rule field(s): {', '.join(sorted(unknown))}")
        with self._lock:
            updated = self._replace(self._index(rule_id), **changes)
        logger.info(f"Rule {rule_id} updated: {changes}")
        return updated

    def toggle(self, rule_id):
        with self._lock:
            idx = self._index(rule_id)
            updated = self._replace(idx, enabled=not self.rules[idx].enabled)
        logger.info(f"Rule {rule_id} {'enabled' if updated.enabled else 'disabled'}")
        return updated

    def toggle_channel(self, rule_id, channel):
        channel = coerce_enum(Channel, channel, "notification channel")
        with self._lock:
            idx = self._index(rule_id)
            updated = self._replace(idx, channels=self.rules[idx].channels ^ {channel})
        logger.info(f"Rule {rule_id} channel {channel.value} toggled")
        return updated

    def _replace(self, idx, **changes):
        """Swap in an edited copy of rule ``idx``. Caller holds the lock."""
        updated = replace(self.rules[idx], **changes)
        self._check_rule(updated)
        rules = list(self.rules)
        rules[idx] = updated
        self.rules = rules
        return updated

    def remove(self, rule_id):
        with self._lock:
            idx = self._index(rule_id)
            rules = list(self.rules)
            removed = rules.pop(idx)
            self.rules = rules
        logger.info(f"Removed rule {rule_id}")
        return removed

    def _index(self, rule_id):
        for i, r in enumerate(self.rules):
            if r.id == rule_id:
                return i
        raise ConfigurationError(f"Unknown rule: {rule_id}")

    def get_enabled_rules(self):
        return [r for r in self.rules if r.enabled]

    def get_rule(self, rule_id):
        for r in self.rules:
            if r.id == rule_id:
                return r
        return None

    def get_all_rules(self):
        return list(self.rules)
