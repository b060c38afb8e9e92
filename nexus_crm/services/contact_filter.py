from nexus_crm.models.domain.contact_domain import ContactWithDetails, StatusFilter

ALL_STATUSES = "All"


def matches(contact: ContactWithDetails, search_term: str, status_filter: StatusFilter) -> bool:
    term = search_term.lower()
    matches_search = term in contact.name.lower() or term in contact.company.lower()
    matches_status = status_filter == ALL_STATUSES or contact.status == status_filter
    return matches_search and matches_status


def filter_contacts(
    contacts: list[ContactWithDetails],
    search_term: str = "",
    status_filter: StatusFilter = ALL_STATUSES,
) -> list[ContactWithDetails]:
    """Case-insensitive name/company search combined with an exact status filter."""
    return [c for c in contacts if matches(c, search_term, status_filter)]
