"""Domain types — Alertmanager webhook payloads and bare-metal node records."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class AlertStatus(StrEnum):
    """Alertmanager alert status."""

    FIRING = "firing"
    RESOLVED = "resolved"


class Alert(BaseModel):
    """A single alert as delivered by the Alertmanager webhook receiver."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status: AlertStatus | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: str = Field(default="", alias="startsAt")
    ends_at: str = Field(default="", alias="endsAt")
    generator_url: str = Field(default="", alias="generatorURL")
    fingerprint: str = ""

    @property
    def name(self) -> str:
        return self.labels.get("alertname", "")

    @property
    def severity(self) -> str:
        return self.labels.get("severity", "")


class AlertBatch(BaseModel):
    """Alertmanager webhook body — one notification carrying many alerts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: str = ""
    group_key: str = Field(default="", alias="groupKey")
    receiver: str = ""
    status: AlertStatus | None = None
    alerts: list[Alert] = Field(default_factory=list)
    group_labels: dict[str, str] = Field(default_factory=dict, alias="groupLabels")
    common_labels: dict[str, str] = Field(default_factory=dict, alias="commonLabels")
    common_annotations: dict[str, str] = Field(default_factory=dict, alias="commonAnnotations")
    external_url: str = Field(default="", alias="externalURL")


# ── Bare-metal inventory ─────────────────────────────────────────


class ProvisionState(StrEnum):
    """Ironic provisioning states referenced by the remediation logic."""

    ENROLL = "enroll"
    MANAGEABLE = "manageable"
    AVAILABLE = "available"
    ACTIVE = "active"
    DEPLOY_FAILED = "deploy failed"
    CLEAN_FAILED = "clean failed"
    INSPECT_FAILED = "inspect failed"
    ERROR = "error"


class Node(BaseModel):
    """Transient view of a bare-metal node owned by the inventory service."""

    uuid: str
    name: str = ""
    provision_state: str = ProvisionState.AVAILABLE
    maintenance: bool = False
    maintenance_reason: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class UpdateOp(StrEnum):
    """JSON-Patch operation names accepted by the node PATCH call."""

    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


class UpdateOperation(BaseModel):
    """One entry of a node PATCH request body."""

    op: UpdateOp
    path: str
    value: Any = None

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {"op": self.op.value, "path": self.path}
        if self.op != UpdateOp.REMOVE:
            body["value"] = self.value
        return body
