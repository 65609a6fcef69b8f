"""
Common Pydantic schemas shared by the request/response models.

This module provides:
- Pagination parameters and response models
- The user summary embedded in grant, request and account responses
"""

import uuid
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# Type variable for generic paginated responses
DataT = TypeVar("DataT")


class PaginationParams(BaseModel):
    """
    Query parameters for paginated list endpoints.

    Attributes:
        page: Page number (1-indexed)
        page_size: Number of items per page (max 100)
    """

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Number of items per page (max 100)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "page": 1,
                "page_size": 20,
            }
        }
    )

    @property
    def offset(self) -> int:
        """
        Calculate SQL OFFSET from page number.

        Example:
            >>> PaginationParams(page=2, page_size=20).offset
            20
        """
        return (self.page - 1) * self.page_size

    @staticmethod
    def calculate_total_pages(total: int, page_size: int) -> int:
        """
        Calculate total pages from total count.

        Example:
            >>> PaginationParams.calculate_total_pages(95, 20)
            5
            >>> PaginationParams.calculate_total_pages(0, 20)
            0
        """
        return (total + page_size - 1) // page_size if total > 0 else 0


class PaginationMeta(BaseModel):
    """Metadata for paginated responses."""

    total: int = Field(description="Total number of items")
    page: int = Field(description="Current page number")
    page_size: int = Field(description="Number of items per page")
    total_pages: int = Field(description="Total number of pages")


class PaginatedResponse(BaseModel, Generic[DataT]):
    """
    Generic paginated response wrapper.

    Type Parameters:
        DataT: Type of items in the data list

    Attributes:
        data: List of items for current page
        meta: Pagination metadata
    """

    data: list[DataT]
    meta: PaginationMeta

    @classmethod
    def build(
        cls,
        data: list[DataT],
        total: int,
        pagination: PaginationParams,
    ) -> "PaginatedResponse[DataT]":
        """
        Wrap one page of items with its pagination metadata.

        Example:
            logs, total = await audit_service.get_account_audit_logs(...)
            return PaginatedResponse[AuditLogResponse].build(
                [AuditLogResponse.model_validate(log) for log in logs],
                total,
                pagination,
            )
        """
        return cls(
            data=data,
            meta=PaginationMeta(
                total=total,
                page=pagination.page,
                page_size=pagination.page_size,
                total_pages=PaginationParams.calculate_total_pages(
                    total, pagination.page_size
                ),
            ),
        )


class UserSummary(BaseModel):
    """
    Summary of user information embedded in other responses.

    Attributes:
        id: User UUID
        username: Username
        email: Email address
        full_name: Full name (falls back to username)
    """

    id: uuid.UUID = Field(description="User unique identifier")
    username: str = Field(description="Username")
    email: str = Field(description="Email address")
    full_name: str = Field(description="Full name")

    model_config = ConfigDict(from_attributes=True)
