"""Tests for wham/core/types.py — webhook payload and node models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from wham.core.types import (
    Alert,
    AlertBatch,
    AlertStatus,
    Node,
    UpdateOp,
    UpdateOperation,
)


class TestAlert:
    def test_parses_wire_names(self) -> None:
        alert = Alert.model_validate(
            {
                "status": "firing",
                "labels": {"alertname": "IPMIHardwareError", "severity": "critical"},
                "annotations": {"meta": "x"},
                "startsAt": "2024-01-01T00:00:00Z",
                "endsAt": "0001-01-01T00:00:00Z",
                "generatorURL": "http://prometheus/graph",
                "fingerprint": "abc",
            }
        )
        assert alert.status == AlertStatus.FIRING
        assert alert.name == "IPMIHardwareError"
        assert alert.severity == "critical"
        assert alert.starts_at == "2024-01-01T00:00:00Z"
        assert alert.generator_url == "http://prometheus/graph"

    def test_missing_labels_default_empty(self) -> None:
        alert = Alert(status=AlertStatus.RESOLVED)
        assert alert.labels == {}
        assert alert.name == ""
        assert alert.severity == ""

    def test_frozen(self) -> None:
        alert = Alert(status=AlertStatus.FIRING)
        with pytest.raises(ValidationError):
            alert.status = AlertStatus.RESOLVED  # type: ignore[misc]

    def test_unknown_status_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Alert.model_validate({"status": "pending"})

    def test_missing_status_is_none(self) -> None:
        alert = Alert.model_validate({"labels": {"severity": "critical"}})
        assert alert.status is None
        assert alert.severity == "critical"


class TestAlertBatch:
    def test_full_payload(self) -> None:
        batch = AlertBatch.model_validate(
            {
                "version": "4",
                "groupKey": "{}:{alertname=\"x\"}",
                "receiver": "wham",
                "status": "firing",
                "alerts": [{"status": "firing"}, {"status": "resolved"}],
                "commonLabels": {"region": "r1"},
                "externalURL": "http://alertmanager",
            }
        )
        assert batch.receiver == "wham"
        assert len(batch.alerts) == 2
        assert batch.common_labels == {"region": "r1"}

    def test_empty_object(self) -> None:
        assert AlertBatch.model_validate({}).alerts == []


class TestNode:
    def test_defaults(self) -> None:
        node = Node(uuid="n1")
        assert node.provision_state == "available"
        assert node.maintenance is False
        assert node.maintenance_reason is None


class TestUpdateOperation:
    def test_replace_carries_value(self) -> None:
        op = UpdateOperation(op=UpdateOp.REPLACE, path="/maintenance", value=True)
        assert op.to_json() == {"op": "replace", "path": "/maintenance", "value": True}

    def test_remove_omits_value(self) -> None:
        op = UpdateOperation(op=UpdateOp.REMOVE, path="/maintenance_reason")
        assert op.to_json() == {"op": "remove", "path": "/maintenance_reason"}
