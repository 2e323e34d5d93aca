"""wham — Alertmanager webhook receiver driving bare-metal maintenance."""

__version__ = "0.2.0"
