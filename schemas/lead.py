"""Lead row, composite and caller schemas."""
from datetime import datetime
from typing import FrozenSet, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LeadRow(BaseModel):
    """One crm.leads row: identity and ownership only."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: UUID
    lead_number: Optional[int] = None
    user_id: Optional[UUID] = None
    contact_entity_id: Optional[UUID] = None
    is_converted_to_client: bool = False
    converted_at: Optional[datetime] = None
    loan_originator_id: Optional[UUID] = None
    processor_id: Optional[UUID] = None
    underwriter_id: Optional[UUID] = None
    assigned_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class ContactEntityRow(BaseModel):
    """One crm.contact_entities row. Every field may be absent in a change payload."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: Optional[UUID] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    loan_amount: Optional[float] = None
    loan_type: Optional[str] = None
    annual_revenue: Optional[float] = None
    net_operating_income: Optional[float] = None
    credit_score: Optional[int] = None
    stage: Optional[str] = None
    priority: Optional[str] = None
    naics_code: Optional[str] = None
    ownership_structure: Optional[str] = None
    notes: Optional[str] = None
    call_notes: Optional[str] = None
    bdo_name: Optional[str] = None
    bdo_telephone: Optional[str] = None
    bdo_email: Optional[str] = None


class Lead(LeadRow):
    """Composite lead: the leads row with its contact entity flattened in."""

    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    business_name: str = ""
    business_address: str = ""
    loan_amount: float = 0
    loan_type: str = ""
    annual_revenue: float = 0
    net_operating_income: float = 0
    credit_score: int = 0
    stage: str = "Initial Contact"
    priority: str = "Medium"
    naics_code: str = ""
    ownership_structure: str = ""
    notes: str = ""
    call_notes: str = ""
    bdo_name: str = ""
    bdo_telephone: str = ""
    bdo_email: str = ""
    last_contact: Optional[datetime] = None
    contact_entity: Optional[ContactEntityRow] = None


class Caller(BaseModel):
    """Authenticated identity a fetch runs on behalf of."""

    model_config = ConfigDict(frozen=True)

    user_id: UUID
    roles: FrozenSet[str] = Field(default_factory=frozenset)


class LeadsSnapshot(BaseModel):
    records: List[Lead] = Field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


class Notification(BaseModel):
    """A user-facing toast."""

    title: str
    description: str = ""
    variant: Literal["default", "destructive"] = "default"
