"""Unit tests for composite lead building and local patching."""
from schemas.lead import ContactEntityRow
from sync.composition import compose_lead, display_name, patch_lead


class TestDisplayName:
    def test_prefers_first_and_last_name(self, make_contact):
        assert display_name(make_contact(first_name="Jane", last_name="Doe", name="J. Doe")) == "Jane Doe"

    def test_trims_when_only_one_part_is_set(self, make_contact):
        assert display_name(make_contact(first_name=None, last_name="Doe")) == "Doe"
        assert display_name(make_contact(first_name="Jane", last_name="")) == "Jane"

    def test_falls_back_to_raw_name(self, make_contact):
        assert display_name(make_contact(first_name=None, last_name=None, name="Acme Holdings")) == "Acme Holdings"

    def test_empty_when_nothing_is_known(self):
        assert display_name(None) == ""
        assert display_name(ContactEntityRow()) == ""


class TestComposeLead:
    def test_flattens_contact_fields(self, make_lead_row, make_contact):
        contact = make_contact()
        row = make_lead_row(contact_entity_id=contact.id)

        lead = compose_lead(row, contact)

        assert lead.id == row.id
        assert lead.lead_number == row.lead_number
        assert lead.name == "Jane Doe"
        assert lead.email == "jane@acme.com"
        assert lead.business_name == "Acme Corp"
        assert lead.loan_amount == 250000
        assert lead.stage == "Qualified"
        assert lead.last_contact == row.updated_at
        assert lead.contact_entity == contact

    def test_missing_contact_gives_blank_detail(self, make_lead_row):
        row = make_lead_row()

        lead = compose_lead(row, None)

        assert lead.id == row.id
        assert lead.name == ""
        assert lead.email == ""
        assert lead.loan_amount == 0
        assert lead.credit_score == 0
        assert lead.stage == "Initial Contact"
        assert lead.priority == "Medium"
        assert lead.contact_entity is None

    def test_masks_redacted_fields(self, make_lead_row, make_contact):
        contact = make_contact(
            email="[SECURED]", phone="[SECURED]", bdo_email="[SECURED]", notes="[SECURED]"
        )

        lead = compose_lead(make_lead_row(contact_entity_id=contact.id), contact)

        assert lead.email == "***@***.com"
        assert lead.phone == "***-***-****"
        assert lead.bdo_email == "***@***.com"
        assert lead.notes == "********"
        assert "[SECURED]" not in lead.model_dump_json(exclude={"contact_entity"})


class TestPatchLead:
    def test_applies_only_present_fields(self, make_lead, make_contact):
        lead = make_lead(make_contact(stage="Qualified", priority="High"))

        patched = patch_lead(lead, {"id": str(lead.contact_entity_id), "stage": "Approved"})

        assert patched.stage == "Approved"
        assert patched.priority == "High"
        assert patched.email == lead.email
        assert patched.contact_entity.stage == "Approved"

    def test_recomputes_display_name(self, make_lead, make_contact):
        lead = make_lead(make_contact(first_name="Jane", last_name="Doe"))

        patched = patch_lead(lead, {"last_name": "Smith"})

        assert patched.name == "Jane Smith"

    def test_masks_patched_redacted_values(self, make_lead, make_contact):
        lead = make_lead(make_contact())

        patched = patch_lead(lead, {"phone": "[SECURED]"})

        assert patched.phone == "***-***-****"

    def test_leaves_lead_row_fields_untouched(self, make_lead, make_contact):
        lead = make_lead(make_contact())

        patched = patch_lead(lead, {"stage": "Funded", "lead_number": 1, "created_at": "2020-01-01T00:00:00Z"})

        assert patched.lead_number == lead.lead_number
        assert patched.created_at == lead.created_at
        assert patched.id == lead.id
