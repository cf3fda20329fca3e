"""Contact listing."""

from __future__ import annotations

from ..errors import UserInputError
from ..models import Contact, format_timestamp
from ..output.pagination import ListConfig, ListContext, ListResult
from .light import force_light, light_contacts

SORT_FIELDS = {
    "name": "name",
    "n": "name",
    "email": "email",
    "e": "email",
    "phone_number": "phone_number",
    "pn": "phone_number",
    "last_activity_at": "last_activity_at",
    "la": "last_activity_at",
}

HEADERS = ("ID", "NAME", "EMAIL", "PHONE", "CREATED")


def parse_sort(value: str | None) -> str | None:
    """Normalise ``--sort``; a leading ``-`` means descending and is kept."""
    if not value:
        return None
    value = value.strip()
    descending = value.startswith("-")
    key = value.lstrip("-").lower()
    if key not in SORT_FIELDS:
        valid = ", ".join(sorted({v for v in SORT_FIELDS.values()}))
        raise UserInputError(f"invalid sort {value!r}: must be one of {valid}")
    field_name = SORT_FIELDS[key]
    return f"-{field_name}" if descending else field_name


def contacts_has_more(meta: dict) -> bool:
    if meta.get("has_more") is not None:
        return bool(meta["has_more"])
    try:
        total_pages = int(meta.get("total_pages") or 0)
        current_page = int(meta.get("current_page") or 0)
    except (TypeError, ValueError):
        return False
    if total_pages > 0 and current_page > 0:
        return current_page < total_pages
    return False


def fetch_contacts(ctx: ListContext, client, page: int, page_size: int) -> ListResult[Contact]:
    contacts, meta = client.list_contacts(page=page, sort=parse_sort(ctx.param("sort")))
    return ListResult(items=contacts, has_more=contacts_has_more(meta))


def contact_row(contact: Contact) -> list[str]:
    return [
        str(contact.id),
        contact.name.strip() or "(none)",
        contact.email.strip(),
        contact.phone_number.strip(),
        format_timestamp(contact.created_at),
    ]


def _json_items(ctx: ListContext, client, items: list[Contact]):
    if not ctx.light:
        return None
    return light_contacts(items)


LIST_CONFIG: ListConfig[Contact] = ListConfig(
    fetch=fetch_contacts,
    headers=HEADERS,
    row=contact_row,
    disable_limit=True,
    strip_pagination=True,
    json_transform=_json_items,
    force_json=force_light,
    force_json_unwrap_items=True,
)
