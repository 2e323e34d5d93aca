"""Bare-metal maintenance handler."""
