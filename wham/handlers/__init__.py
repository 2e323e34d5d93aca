"""Remediation handlers, their registry and the manager."""
