"""Exception hierarchy for handler wiring and per-alert remediation."""

from __future__ import annotations


class WhamError(Exception):
    """Base exception for all wham errors."""


# ── Wiring ───────────────────────────────────────────────────────


class HandlerError(WhamError):
    """Base exception for handler registration and construction errors."""


class HandlerRegistrationError(HandlerError):
    """A handler was registered without a factory."""


class UnknownHandlerError(HandlerError):
    """No factory is registered under the requested handler name."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = available
        names = ", ".join(available) if available else "<none>"
        super().__init__(f"unknown handler {name!r}, must be one of: {names}")


class HandlerConfigError(HandlerError):
    """A handler's configuration block does not match its schema."""


# ── Remediation ──────────────────────────────────────────────────


class RemediationError(WhamError):
    """Terminal failure while remediating a single alert."""


class AlertExtractionError(RemediationError):
    """Required data could not be extracted from the alert."""


class MissingRegionError(AlertExtractionError):
    """The alert carries no region label."""

    def __init__(self, alert_name: str) -> None:
        self.alert_name = alert_name
        super().__init__(f"no region set in alert {alert_name}")


class MissingServerIdError(AlertExtractionError):
    """The alert's meta text does not contain a server id."""

    def __init__(self, alert_name: str) -> None:
        self.alert_name = alert_name
        super().__init__(f"missing server id in alert {alert_name}")
