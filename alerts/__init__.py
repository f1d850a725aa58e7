"""Alert system module."""
from alerts.thresholds import ThresholdManager, classify
from alerts.rules_manager import RulesManager
from alerts.engine import AlertEngine, FireState, evaluate
from alerts.lifecycle import AlertLifecycleManager
from alerts.dispatch import NotificationDispatcher, channels_for
from alerts.channels import InAppChannel, EmailChannel, SmsChannel
