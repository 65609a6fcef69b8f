"""
PermissionRequest Pydantic schemas for request/response handling.

This module provides:
- Request creation and review schemas
- Filter parameters for an account's request history
- Request response schema with requester and reviewer details
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from checkbook.models.enums import PermissionType, RequestStatus
from checkbook.schemas.common import UserSummary


class PermissionRequestCreate(BaseModel):
    """
    Schema for requesting a permission on a shared account.

    Attributes:
        requested_permission: Level being asked for
        request_message: Optional note to the owner
    """

    requested_permission: PermissionType = Field(
        description="Permission level being requested",
        examples=[PermissionType.TRANSACTION_ONLY],
    )

    request_message: str | None = Field(
        default=None,
        max_length=500,
        description="Optional message to the account owner",
    )


class PermissionRequestReview(BaseModel):
    """Schema for approving or denying a permission request."""

    review_message: str | None = Field(
        default=None,
        max_length=500,
        description="Optional message to the requester (reason when denying)",
    )


class PermissionRequestFilterParams(BaseModel):
    """
    Query parameters for filtering an account's permission requests.

    Each filter is optional; absence matches everything.
    """

    status: RequestStatus | None = Field(default=None, description="Filter by status")
    requester_id: uuid.UUID | None = Field(
        default=None,
        description="Filter by requesting user",
    )
    start_date: datetime | None = Field(
        default=None,
        description="Only requests created at or after this time",
    )
    end_date: datetime | None = Field(
        default=None,
        description="Only requests created at or before this time",
    )


class PermissionRequestResponse(BaseModel):
    """Schema for permission request response."""

    id: uuid.UUID = Field(description="Request unique identifier")
    account_id: uuid.UUID = Field(description="Target account")
    requester: UserSummary = Field(description="User who filed the request")
    requested_permission: PermissionType = Field(description="Level requested")
    current_permission: PermissionType | None = Field(
        default=None,
        description="Requester's level when the request was filed",
    )
    request_message: str | None = Field(default=None)
    status: RequestStatus = Field(description="Request status")
    reviewer: UserSummary | None = Field(
        default=None,
        description="Owner who approved or denied the request",
    )
    review_message: str | None = Field(default=None)
    created_at: datetime = Field(description="When the request was filed")
    reviewed_at: datetime | None = Field(
        default=None,
        description="When the request left PENDING",
    )

    model_config = ConfigDict(from_attributes=True)
