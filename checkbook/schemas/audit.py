"""
Audit log schemas for request/response handling.

This module provides:
- AuditLogResponse: Single audit log entry with parsed details
- AuditLogFilterParams: Query parameters for filtering audit logs
"""

import json
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkbook.models.enums import AuditActionType


class AuditLogResponse(BaseModel):
    """
    Response schema for a single audit log entry.

    details is parsed from the stored details_json column; entries whose
    details could not be serialized at write time carry None.
    """

    id: UUID = Field(description="Audit log entry ID")
    account_id: UUID = Field(description="Account the event concerns")
    user_id: UUID = Field(description="User who performed the action")
    action_type: AuditActionType = Field(description="Action performed")
    details: dict[str, Any] | None = Field(
        default=None,
        validation_alias="details_json",
        description="Event details",
    )
    ip_address: str | None = Field(default=None, description="Client IP address")
    user_agent: str | None = Field(default=None, description="Client user agent")
    created_at: datetime = Field(description="Timestamp of the action")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "account_id": "123e4567-e89b-12d3-a456-426614174002",
                "user_id": "123e4567-e89b-12d3-a456-426614174001",
                "action_type": "PERMISSION_GRANTED",
                "details": {
                    "target_user_id": "123e4567-e89b-12d3-a456-426614174003",
                    "permission_type": "VIEW_ONLY",
                },
                "ip_address": "192.168.1.100",
                "user_agent": "Mozilla/5.0",
                "created_at": "2024-01-15T10:30:00Z",
            }
        },
    )

    @field_validator("details", mode="before")
    @classmethod
    def parse_details(cls, value: Any) -> Any:
        if isinstance(value, str):
            return json.loads(value)
        return value


class AuditLogFilterParams(BaseModel):
    """
    Query parameters for filtering an account's audit logs.

    action_type is accepted as a raw string and parsed by AuditService so
    an unknown value surfaces as an InvalidInputError.
    """

    action_type: str | None = Field(
        default=None,
        description="Filter by action type (e.g. PERMISSION_GRANTED)",
    )
    user_id: UUID | None = Field(default=None, description="Filter by user ID")
    start_date: datetime | None = Field(
        default=None,
        description="Filter logs at or after this date",
    )
    end_date: datetime | None = Field(
        default=None,
        description="Filter logs at or before this date",
    )
