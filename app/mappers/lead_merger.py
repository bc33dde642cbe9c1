from app.schemas.leads import BusinessLead


def _lead_key(lead: BusinessLead) -> tuple[str, str]:
    return lead.name.lower(), lead.address


def merge_leads(
    existing: list[BusinessLead], incoming: list[BusinessLead]
) -> list[BusinessLead]:
    """Append incoming leads that are not already held.

    A lead is already held when an existing lead has the same name
    (case-insensitive) and the exact same address. Other fields are not
    compared or reconciled, and duplicates inside ``incoming`` are kept.
    """
    seen = {_lead_key(lead) for lead in existing}
    return [*existing, *(lead for lead in incoming if _lead_key(lead) not in seen)]
