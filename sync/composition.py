"""Build composite leads from a leads row and its contact entity."""
from typing import Any, Mapping, Optional

from schemas.lead import ContactEntityRow, Lead, LeadRow

REDACTED = "[SECURED]"

_MASKS = {
    "email": "***@***.com",
    "bdo_email": "***@***.com",
    "phone": "***-***-****",
    "bdo_telephone": "***-***-****",
}
_DEFAULT_MASK = "********"

_PRIMARY_FIELDS = frozenset(LeadRow.model_fields)
_DETAIL_FIELDS = tuple(
    f for f in ContactEntityRow.model_fields if f not in ("id", "name", "first_name", "last_name")
)


def display_name(contact: Optional[ContactEntityRow]) -> str:
    """First + last name when either is set, else the raw name field, else ""."""
    if contact is None:
        return ""
    if contact.first_name or contact.last_name:
        return f"{contact.first_name or ''} {contact.last_name or ''}".strip()
    return contact.name or ""


def mask(field: str, value: Any) -> Any:
    if value == REDACTED:
        return _MASKS.get(field, _DEFAULT_MASK)
    return value


def compose_lead(row: LeadRow, contact: Optional[ContactEntityRow]) -> Lead:
    """Flatten contact onto row. A missing contact leaves detail fields at their defaults."""
    detail: dict[str, Any] = {}
    if contact is not None:
        for field in _DETAIL_FIELDS:
            value = getattr(contact, field)
            # falsy detail values keep the composite default ("" / 0 / stage / priority)
            if value:
                detail[field] = mask(field, value)
    return Lead(
        **row.model_dump(),
        **detail,
        name=display_name(contact),
        last_contact=row.updated_at,
        contact_entity=contact,
    )


def patch_lead(lead: Lead, fields: Mapping[str, Any]) -> Lead:
    """Merge changed contact entity fields into lead and recompute derived fields.

    Only keys present in fields are applied; leads-row fields are left alone.
    """
    update = ContactEntityRow.model_validate(dict(fields))
    changes = update.model_dump(include=update.model_fields_set - {"id"})
    base = lead.contact_entity or ContactEntityRow(id=lead.contact_entity_id or update.id)
    merged = base.model_copy(update=changes)
    row = LeadRow.model_validate(lead.model_dump(include=_PRIMARY_FIELDS))
    return compose_lead(row, merged)
