"""SQLAlchemy 2.0 ORM models for the lead synchronization core.

Covers 3 tables in the crm schema:
  - leads: thin identity / ownership row for a loan lead
  - contact_entities: business and contact detail joined by leads.contact_entity_id
  - user_roles: role grants consulted by row-level policies
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    UUID,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Role values used in the user_roles CHECK constraint
# ---------------------------------------------------------------------------

ROLES = (
    "viewer",
    "tech",
    "closer",
    "underwriter",
    "funder",
    "loan_processor",
    "loan_originator",
    "manager",
    "admin",
    "super_admin",
)

_ROLE_CHECK = "role IN (" + ", ".join(f"'{r}'" for r in ROLES) + ")"


# ===========================================================================
# Schema: crm
# ===========================================================================


class ContactEntity(Base):
    """crm.contact_entities — business / contact detail for one lead."""

    __tablename__ = "contact_entities"
    __table_args__ = {"schema": "crm"}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    loan_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    loan_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    annual_revenue: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    net_operating_income: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    credit_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    stage: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    naics_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ownership_structure: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    call_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bdo_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bdo_telephone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bdo_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    lead: Mapped[Optional["Lead"]] = relationship("Lead", back_populates="contact_entity")


class Lead(Base):
    """crm.leads — identity and ownership row; detail lives in contact_entities."""

    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("contact_entity_id", name="uq_lead_contact_entity"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    lead_number: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    contact_entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crm.contact_entities.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_converted_to_client: Mapped[bool] = mapped_column(
        Boolean, server_default="false", nullable=False
    )
    converted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    loan_originator_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    processor_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    underwriter_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    contact_entity: Mapped[Optional["ContactEntity"]] = relationship(
        "ContactEntity", back_populates="lead"
    )


class UserRole(Base):
    """crm.user_roles — role grants; inactive rows are kept for audit."""

    __tablename__ = "user_roles"
    __table_args__ = (
        CheckConstraint(_ROLE_CHECK, name="ck_user_role"),
        UniqueConstraint("user_id", "role", name="uq_user_role"),
        {"schema": "crm"},
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default="true", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
