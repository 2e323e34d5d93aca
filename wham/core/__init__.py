"""Core module — config, types, logging."""

from wham.core.config import Settings, get_settings, load_settings, reset_settings
from wham.core.logging import setup_logging
from wham.core.types import Alert, AlertBatch, AlertStatus, Node, ProvisionState

__all__ = [
    "Alert",
    "AlertBatch",
    "AlertStatus",
    "Node",
    "ProvisionState",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]
