"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Identity / tenancy models
# ---------------------------------------------------------------------------


class UserModel(Base):
    """Local mirror of an identity-provider user. The id is the provider's subject."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True)
    email = Column(Text, unique=True, nullable=False)
    name = Column(Text, nullable=True)
    image = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)

    memberships = relationship(
        "OrganizationMembershipModel", back_populates="user", cascade="all, delete-orphan"
    )


class PlanModel(Base):
    __tablename__ = "plans"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    codename = Column(Text, unique=True, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    quotas = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)


class OrganizationModel(Base):
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    image = Column(Text, nullable=True)
    plan_id = Column(Uuid, ForeignKey("plans.id", ondelete="SET NULL"), nullable=True)
    # Billing-provider customer ids; several may be stale at once.
    dodo_customer_id = Column(Text, nullable=True, unique=True)
    stripe_customer_id = Column(Text, nullable=True, unique=True)
    lemon_squeezy_customer_id = Column(Text, nullable=True, unique=True)
    # Derived cache of the credit ledger: {credit_type: balance}
    credits = Column(JSONType, nullable=False, default=dict)
    credits_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_now)

    plan = relationship("PlanModel", lazy="joined")
    members = relationship(
        "OrganizationMembershipModel",
        back_populates="organization",
        cascade="all, delete-orphan",
    )


class OrganizationMembershipModel(Base):
    __tablename__ = "organization_memberships"
    __table_args__ = (UniqueConstraint("user_id", "organization_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), default=_now)

    organization = relationship("OrganizationModel", back_populates="members")
    user = relationship("UserModel", back_populates="memberships")


# ---------------------------------------------------------------------------
# Credits / billing
# ---------------------------------------------------------------------------


class CreditTransactionModel(Base):
    __tablename__ = "credit_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_type = Column(String, nullable=False)  # credit | debit | expired
    credit_type = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    payment_ref = Column(Text, nullable=True, unique=True)
    reason = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSONType, default=dict)
    expiration_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)


class PaypalContextModel(Base):
    """One row per PayPal subscription attempt."""

    __tablename__ = "paypal_contexts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    plan_id = Column(Uuid, ForeignKey("plans.id", ondelete="SET NULL"), nullable=True)
    frequency = Column(String, nullable=True)
    paypal_order_id = Column(Text, nullable=True)
    paypal_subscription_id = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="PENDING")
    created_at = Column(DateTime(timezone=True), default=_now)

    plan = relationship("PlanModel", lazy="joined")


# ---------------------------------------------------------------------------
# Marketplace
# ---------------------------------------------------------------------------


class ConsultantModel(Base):
    __tablename__ = "consultants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    headline = Column(Text, nullable=True)
    bio = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    website = Column(Text, nullable=True)
    linkedin = Column(Text, nullable=True)
    expertise_tags = Column(JSONType, default=list)
    hourly_rate = Column(Integer, nullable=True)  # cents
    availability = Column(String, nullable=False, default="available")
    status = Column(String, nullable=False, default="DRAFT")
    stripe_account_id = Column(Text, nullable=True)
    stripe_onboarding_complete = Column(Boolean, nullable=False, default=False)
    onboarding_link_url = Column(Text, nullable=True)
    payouts_enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    user = relationship("UserModel", lazy="joined")


class EngagementModel(Base):
    __tablename__ = "engagements"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id = Column(
        Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    consultant_id = Column(
        Uuid, ForeignKey("consultants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="INITIATED")
    budget = Column(Integer, nullable=True)  # cents
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    consultant = relationship("ConsultantModel", lazy="joined")


class InvoiceModel(Base):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    engagement_id = Column(
        Uuid, ForeignKey("engagements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount = Column(Integer, nullable=False)  # cents
    commission_amount = Column(Integer, nullable=True)  # cents
    status = Column(String, nullable=False, default="PENDING")
    description = Column(Text, nullable=True)
    checkout_session_id = Column(Text, nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    engagement = relationship("EngagementModel", lazy="joined")


class AuditLogModel(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_id = Column(Text, nullable=False)
    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(Text, nullable=False)
    details = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)
