"""Shared HTTP surface for handler webhooks."""

from wham.api.server import API

__all__ = ["API"]
