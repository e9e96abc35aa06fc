"""Company Pydantic schemas for API request/response models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.models.company import MembershipRole


class CompanyResponse(BaseModel):
    """Schema for company API responses."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: UUID = Field(description="Company unique identifier")
    name: str = Field(description="Company name")
    description: str | None = Field(default=None, description="Company description")
    industry: str | None = Field(default=None, description="Industry")
    website: str | None = Field(default=None, description="Company website")
    is_active: bool = Field(default=True, description="Whether the company is active")


class MembershipResponse(BaseModel):
    """Schema for company membership API responses."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    company_id: UUID = Field(description="Company ID")
    user_id: UUID = Field(description="Member's profile ID")
    role: MembershipRole = Field(description="Member's role in the company")
    is_active: bool = Field(description="Whether the membership is active")
    joined_at: datetime = Field(description="When member joined")
