"""Shared test fixtures."""
import os
import sys
import pytest
from datetime import datetime, timezone

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.alerts import AlertRule
from models.thresholds import SensorThreshold
from alerts.thresholds import ThresholdManager
from alerts.rules_manager import RulesManager
from alerts.lifecycle import AlertLifecycleManager
from alerts.engine import AlertEngine
from monitor.pipeline import FarmMonitor

T0 = datetime(2024, 1, 15, 15, 45, 22, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def temperature_threshold():
    return SensorThreshold(id="temperature", name="Temperature", unit="°C",
                           min=22, max=26, tolerance=1.0, priority="high")


@pytest.fixture
def sample_thresholds(temperature_threshold):
    return [
        temperature_threshold,
        SensorThreshold(id="humidity", name="Humidity", unit="%",
                        min=60, max=80, tolerance=5, priority="high"),
        SensorThreshold(id="co2", name="CO₂", unit="ppm",
                        min=400, max=500, tolerance=25, priority="medium"),
    ]


@pytest.fixture
def temp_high_rule():
    return AlertRule(id="temp_high", name="Temperature Too High", sensor="Temperature",
                     condition="above", trigger_value=28, severity="high",
                     channels={"email": True, "sms": False, "inApp": True},
                     cooldown_minutes=15)


@pytest.fixture
def sample_rules(temp_high_rule):
    return [
        temp_high_rule,
        AlertRule(id="temp_low", name="Temperature Too Low", sensor="Temperature",
                  condition="below", trigger_value=20, severity="medium",
                  channels=["email", "inApp"], cooldown_minutes=15),
        AlertRule(id="humidity_critical", name="Humidity Critical", sensor="Humidity",
                  condition="outside_range", low=50, high=85, severity="critical",
                  channels=["email", "sms", "inApp"], cooldown_minutes=5),
    ]


@pytest.fixture
def threshold_manager(sample_thresholds):
    return ThresholdManager.from_list(sample_thresholds)


@pytest.fixture
def rules_manager(sample_rules):
    return RulesManager.from_list(sample_rules)


@pytest.fixture
def lifecycle():
    return AlertLifecycleManager()


@pytest.fixture
def engine(rules_manager, lifecycle):
    return AlertEngine(rules_manager, lifecycle)


@pytest.fixture
def farm_monitor(threshold_manager, engine):
    return FarmMonitor(threshold_manager, engine)
