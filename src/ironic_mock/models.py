"""Data types shared by the mock server and the Ironic facade."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Node(BaseModel):
    """A bare-metal node as the provisioning API serialises it.

    Only the fields tests commonly assert on are modelled; anything else can
    be carried in ``extra``. Unset fields serialise with their empty defaults
    so responses keep the same shape as the real API.
    """

    model_config = ConfigDict(populate_by_name=True)

    uuid: str = ""
    name: str = ""
    power_state: str = ""
    target_power_state: str = ""
    provision_state: str = ""
    target_provision_state: str = ""
    maintenance: bool = False
    maintenance_reason: str = ""
    fault: str = ""
    last_error: str = ""
    reservation: str = ""
    driver: str = ""
    driver_info: dict[str, Any] = Field(default_factory=dict)
    driver_internal_info: dict[str, Any] = Field(default_factory=dict)
    properties: dict[str, Any] = Field(default_factory=dict)
    instance_info: dict[str, Any] = Field(default_factory=dict)
    instance_uuid: str = ""
    extra: dict[str, Any] = Field(default_factory=dict)
    console_enabled: bool = False
    resource_class: str = ""
    boot_interface: str = ""
    deploy_interface: str = ""
    inspect_interface: str = ""
    management_interface: str = ""
    power_interface: str = ""
    automated_clean: bool | None = None
    protected: bool = False

    def to_json(self) -> str:
        return self.model_dump_json()


class RegisteredResponse(BaseModel):
    """A canned answer for one pattern and (optionally) one method."""

    pattern: str
    method: str | None = None
    status_code: int = 200
    body: str = ""

    @field_validator("pattern")
    @classmethod
    def _absolute_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Pattern must start with '/': {v!r}")
        return v

    @field_validator("method")
    @classmethod
    def _upper_method(cls, v: str | None) -> str | None:
        return v.upper() if v else None

    @field_validator("status_code")
    @classmethod
    def _valid_status(cls, v: int) -> int:
        if v < 100 or v > 599:
            raise ValueError(f"Status code must be between 100 and 599, got {v}")
        return v


class CreatedNode(BaseModel):
    """Body of a create-node request and the uuid the mock handed back."""

    body: str
    uuid: str


class RequestLogEntry(BaseModel):
    method: str
    path: str
    body: str = ""
    status_code: int
    response_body: str = ""
