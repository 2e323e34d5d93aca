"""Configuration schema for the bare-metal handler (schema version 1)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator

DEFAULT_MAINTENANCE_REASON = (
    "IPMI Hardware Error Alert. Please check alerts in channel: alert-metal-info"
)


class RegionCredentials(BaseModel):
    """Identity credentials for one region."""

    user: str
    password: SecretStr
    auth_url: str
    user_domain_name: str = "Default"
    project_name: str = ""
    project_domain_name: str = "Default"
    # Catalog region to select; defaults to the region key.
    region_name: str | None = None

    @field_validator("auth_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def from_env(
        cls, environ: Mapping[str, str] | None = None
    ) -> tuple[str, RegionCredentials] | None:
        """Build ``(region, credentials)`` from ``OS_*`` variables, if present."""
        env = os.environ if environ is None else environ
        required = ("OS_AUTH_URL", "OS_USERNAME", "OS_PASSWORD", "OS_REGION_NAME")
        if not all(env.get(key) for key in required):
            return None
        region = env["OS_REGION_NAME"]
        creds = cls(
            user=env["OS_USERNAME"],
            password=SecretStr(env["OS_PASSWORD"]),
            auth_url=env["OS_AUTH_URL"],
            user_domain_name=env.get("OS_USER_DOMAIN_NAME") or "Default",
            project_name=env.get("OS_PROJECT_NAME") or "",
            project_domain_name=env.get("OS_PROJECT_DOMAIN_NAME") or "Default",
            region_name=region,
        )
        return region, creds


class RetryConfig(BaseModel):
    """Bounded retry for transient backend failures."""

    attempts: int = Field(default=3, ge=1)
    base_delay_secs: float = Field(default=0.5, ge=0.0)
    max_delay_secs: float = Field(default=5.0, ge=0.0)


class BaremetalConfig(BaseModel):
    """Root configuration block of the bare-metal handler."""

    version: Literal[1] = 1
    path: str = "/metal"
    queue_size: int = Field(default=100, ge=1)
    severities: list[str] = ["CRITICAL", "WARNING"]
    region_label: str = "region"
    meta_annotation: str = "meta"
    maintenance_reason: str = DEFAULT_MAINTENANCE_REASON
    eligible_states: list[str] = [
        "available",
        "manageable",
        "enroll",
        "inspect failed",
        "clean failed",
        "deploy failed",
        "error",
    ]
    service_type: str = "baremetal"
    interface: Literal["public", "internal", "admin"] = "public"
    api_version: str | None = None
    eager_auth: bool = False
    request_timeout_secs: float = Field(default=30.0, gt=0.0)
    retry: RetryConfig = RetryConfig()
    regions: dict[str, RegionCredentials] = {}

    @field_validator("severities")
    @classmethod
    def _upper(cls, v: list[str]) -> list[str]:
        return [s.upper() for s in v]

    def with_env_region(self, environ: Mapping[str, str] | None = None) -> BaremetalConfig:
        """Fill ``regions`` from ``OS_*`` variables when none are configured."""
        if self.regions:
            return self
        found = RegionCredentials.from_env(environ)
        if found is None:
            return self
        region, creds = found
        return self.model_copy(update={"regions": {region: creds}})
