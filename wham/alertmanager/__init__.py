"""Alertmanager webhook decoding."""

from wham.alertmanager.webhook import decode_alerts, handle_webhook_alerts, to_json

__all__ = ["decode_alerts", "handle_webhook_alerts", "to_json"]
