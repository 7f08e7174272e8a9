"""Alert evaluation and notification delivery."""

from oracle_sentinel.alerts.evaluator import AlertEvaluator, evaluate_condition
from oracle_sentinel.alerts.notifier import (
    LogNotifier,
    Notifier,
    SmtpNotifier,
    create_notifier,
    format_alert_message,
)

__all__ = [
    "AlertEvaluator",
    "evaluate_condition",
    "Notifier",
    "SmtpNotifier",
    "LogNotifier",
    "create_notifier",
    "format_alert_message",
]
