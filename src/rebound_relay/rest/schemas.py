"""Pydantic request/response models for REST API.

JSON bodies use camelCase keys; Python code uses the snake_case field names.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------------------------------------------------------------------------
# Users / organizations
# ---------------------------------------------------------------------------


class UpdateMeRequest(CamelModel):
    name: str = Field(min_length=2)
    image: str | None = None


class MeResponse(CamelModel):
    id: str
    email: str
    name: str
    image: str | None = None
    created_at: datetime | None = None


class PlanSchema(CamelModel):
    id: UUID
    name: str
    codename: str
    quotas: dict[str, Any] = Field(default_factory=dict)


class OrganizationSchema(CamelModel):
    id: UUID
    name: str
    image: str | None = None
    plan_id: UUID | None = None
    credits: dict[str, int] = Field(default_factory=dict)
    created_at: datetime | None = None


class CurrentOrganizationResponse(CamelModel):
    organization: OrganizationSchema
    role: str
    plan: PlanSchema | None = None


class SwitchOrganizationRequest(CamelModel):
    organization_id: UUID


class BillingPortalResponse(CamelModel):
    provider: str
    url: str


class PaypalContextSchema(CamelModel):
    id: UUID
    created_at: datetime | None = None
    plan_id: UUID | None = None
    plan_name: str | None = None
    user_id: UUID | None = None
    organization_id: UUID
    frequency: str | None = None
    paypal_order_id: str | None = None
    paypal_subscription_id: str | None = None
    status: str


class PaypalContextListResponse(CamelModel):
    contexts: list[PaypalContextSchema]


class PaypalActionRequest(CamelModel):
    context_id: UUID
    action: Literal["cancel"]


# ---------------------------------------------------------------------------
# Credits
# ---------------------------------------------------------------------------


class CreditAdjustmentRequest(CamelModel):
    action: Literal["add", "deduct"]
    credit_type: Literal["consultation", "document_review", "contact_request"]
    amount: int = Field(gt=0)
    reason: str = Field(min_length=1)


class CreditTransactionSchema(CamelModel):
    id: UUID
    transaction_type: str
    credit_type: str
    amount: int
    payment_ref: str | None = None
    reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_")
    expiration_date: datetime | None = None
    created_at: datetime | None = None


class PaginationSchema(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class CreditsResponse(CamelModel):
    organization: OrganizationSchema
    credits: dict[str, int]
    transactions: list[CreditTransactionSchema]
    pagination: PaginationSchema


# ---------------------------------------------------------------------------
# Consultants
# ---------------------------------------------------------------------------


class ConsultantProfileRequest(CamelModel):
    headline: str = Field(min_length=1)
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin: str | None = None
    expertise_tags: list[str] = Field(default_factory=list)
    hourly_rate: int | None = Field(default=None, ge=0)
    availability: str | None = None

    @field_validator("expertise_tags")
    @classmethod
    def strip_tags(cls, v: list[str]) -> list[str]:
        return [tag.strip() for tag in v if tag.strip()]


class ConsultantSchema(CamelModel):
    id: UUID
    user_id: UUID
    headline: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin: str | None = None
    expertise_tags: list[str] = Field(default_factory=list)
    hourly_rate: int | None = None
    availability: str | None = None
    status: str
    stripe_account_id: str | None = None
    stripe_onboarding_complete: bool = False
    payouts_enabled: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RejectConsultantRequest(CamelModel):
    reason: str | None = None


class ManualPayoutRequest(CamelModel):
    amount: int = Field(gt=0)


class AuditLogSchema(CamelModel):
    id: UUID
    actor_id: str
    action: str
    entity_type: str
    entity_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None


class AuditLogListResponse(CamelModel):
    logs: list[AuditLogSchema]


# ---------------------------------------------------------------------------
# Engagements
# ---------------------------------------------------------------------------


class CreateEngagementRequest(CamelModel):
    consultant_id: UUID
    title: str = Field(min_length=1)
    description: str | None = None
    budget: int | None = Field(default=None, ge=0)


class EngagementSchema(CamelModel):
    id: UUID
    client_id: UUID
    consultant_id: UUID
    title: str
    description: str | None = None
    status: str
    budget: int | None = None
    created_at: datetime | None = None


class EngagementListResponse(CamelModel):
    engagements: list[EngagementSchema]


class CreateInvoiceRequest(CamelModel):
    amount: int = Field(gt=0)
    description: str | None = None


class CreateInvoiceResponse(CamelModel):
    invoice_id: str
    checkout_url: str | None = None
