"""Repository layer for the lead synchronization core.

Provides read paths over the crm tables:
- leads: set_caller, get_accessible (privileged function), list_leads (direct)
- contact_entities: get_by_ids (single batched lookup)
- roles: get_active_roles
"""
