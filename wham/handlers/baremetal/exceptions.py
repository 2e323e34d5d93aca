"""Exception hierarchy for the bare-metal handler and its backend client."""

from __future__ import annotations

from wham.handlers.exceptions import RemediationError


class UnknownRegionError(RemediationError):
    """The alert's region has no credentials in the handler configuration."""

    def __init__(self, region: str) -> None:
        self.region = region
        super().__init__(f"unknown region {region!r}: no credentials configured")


class AuthenticationError(RemediationError):
    """Credentials were rejected or the service catalog lacks an endpoint."""

    def __init__(self, region: str, reason: str) -> None:
        self.region = region
        super().__init__(f"region {region}: authentication failed: {reason}")


# ── Backend calls ────────────────────────────────────────────────


class BackendError(RemediationError):
    """Base exception for failed calls against the bare-metal API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class BackendConnectionError(BackendError):
    """Transport failure talking to the bare-metal API."""


class BackendUnavailableError(BackendError):
    """The bare-metal API answered with a 5xx status."""


class BackendAuthError(BackendError):
    """The session token was rejected (401) on an otherwise valid request."""


class NodeNotFoundError(BackendError):
    """The node does not exist in the inventory."""


class BackendRequestError(BackendError):
    """Any other non-success response or an unparseable payload."""


# ── Node state ───────────────────────────────────────────────────


class NodeNotEligibleError(RemediationError):
    """The node's provisioning state forbids putting it into maintenance."""

    def __init__(self, node_id: str, provision_state: str) -> None:
        self.node_id = node_id
        self.provision_state = provision_state
        if provision_state == "active":
            message = f"node {node_id}: cannot set active node into maintenance"
        else:
            message = (
                f"node {node_id}: provision state {provision_state!r} "
                "is not eligible for maintenance"
            )
        super().__init__(message)


class MaintenanceUpdateError(RemediationError):
    """The flag update succeeded but the backend did not echo maintenance=true."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"node {node_id}: unable to put into maintenance")


class PartialMaintenanceError(RemediationError):
    """The maintenance flag is set but the reason could not be recorded."""

    def __init__(self, node_id: str, cause: Exception) -> None:
        self.node_id = node_id
        self.cause = cause
        super().__init__(
            f"node {node_id}: maintenance set but reason could not be recorded: {cause}"
        )
