"""
AccountPermission Pydantic schemas for request/response handling.

This module provides:
- Grant creation schema (target named by username or email)
- Grant response schema with user details
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkbook.models.enums import PermissionType
from checkbook.schemas.common import UserSummary


class AccountPermissionCreate(BaseModel):
    """
    Schema for granting a permission on an account.

    Attributes:
        username_or_email: Username or email of the user to grant access to
        permission_type: Level of access to grant
    """

    username_or_email: str = Field(
        min_length=1,
        max_length=255,
        description="Username or email of the user to share the account with",
        examples=["bob", "bob@example.com"],
    )

    permission_type: PermissionType = Field(
        description="Permission level to grant",
        examples=[PermissionType.VIEW_ONLY, PermissionType.TRANSACTION_ONLY],
    )

    @field_validator("username_or_email")
    @classmethod
    def strip_identifier(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Username or email is required")
        return value


class AccountPermissionResponse(BaseModel):
    """
    Schema for account permission response.

    Attributes:
        id: Grant UUID
        account_id: Account UUID
        user: User holding the grant
        permission_type: Granted level
        created_at: When the grant was created
        updated_at: When the grant was last changed
    """

    id: uuid.UUID = Field(description="Permission unique identifier")
    account_id: uuid.UUID = Field(description="ID of the shared account")
    user: UserSummary = Field(description="User holding the permission")
    permission_type: PermissionType = Field(description="Granted permission level")
    created_at: datetime = Field(description="When the permission was granted")
    updated_at: datetime = Field(description="When the permission was last updated")

    model_config = ConfigDict(from_attributes=True)
