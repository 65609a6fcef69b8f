"""
Account Pydantic schemas for request/response handling.

This module provides:
- Account creation and update schemas
- Account response schema with owner details
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkbook.models.enums import AccountType
from checkbook.schemas.common import UserSummary


class AccountBase(BaseModel):
    """Fields shared by account create and response schemas."""

    name: str = Field(
        min_length=1,
        max_length=100,
        description="Account name (unique per owner, case-insensitive)",
        examples=["Household Checking"],
    )

    description: str | None = Field(
        default=None,
        max_length=500,
        description="Optional notes about the account",
    )

    account_type: AccountType = Field(
        default=AccountType.CHECKING,
        description="Kind of account",
    )

    bank_name: str | None = Field(
        default=None,
        max_length=100,
        description="Institution holding the account",
    )

    account_number_masked: str | None = Field(
        default=None,
        max_length=20,
        description="Masked account number for display",
        examples=["****1234"],
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        """Strip surrounding whitespace and reject blank names."""
        value = value.strip()
        if not value:
            raise ValueError("Account name cannot be blank")
        return value


class AccountCreate(AccountBase):
    """
    Schema for creating an account.

    The creating user becomes the owner. Accounts start unshared.
    """

    current_balance: Decimal = Field(
        default=Decimal("0.00"),
        max_digits=12,
        decimal_places=2,
        description="Opening balance",
    )


class AccountUpdate(BaseModel):
    """
    Schema for updating an account.

    All fields are optional; only provided fields are changed.
    """

    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    account_type: AccountType | None = None
    bank_name: str | None = Field(default=None, max_length=100)
    account_number_masked: str | None = Field(default=None, max_length=20)
    is_shared: bool | None = Field(
        default=None,
        description="Mark the account shared or private",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Account name cannot be blank")
        return value


class AccountResponse(AccountBase):
    """Schema for account response."""

    id: uuid.UUID = Field(description="Account unique identifier")
    is_shared: bool = Field(description="Whether the account is shared")
    current_balance: Decimal = Field(description="Current balance")
    owner: UserSummary = Field(description="Account owner")
    created_at: datetime = Field(description="When the account was created")
    updated_at: datetime = Field(description="When the account was last updated")

    model_config = ConfigDict(from_attributes=True)
