"""Label listing."""

from __future__ import annotations

from ..models import Label
from ..output.pagination import ListConfig, ListContext, ListResult
from .light import force_light, light_labels, light_transform

DESCRIPTION_WIDTH = 40


def fetch_labels(ctx: ListContext, client, page: int, page_size: int) -> ListResult[Label]:
    return ListResult(items=client.list_labels(), has_more=False)


def label_row(label: Label) -> list[str]:
    description = label.description
    if len(description) > DESCRIPTION_WIDTH:
        description = description[:DESCRIPTION_WIDTH - 3] + "..."
    return [str(label.id), label.title, label.color, description]


LIST_CONFIG: ListConfig[Label] = ListConfig(
    fetch=fetch_labels,
    headers=("ID", "TITLE", "COLOR", "DESCRIPTION"),
    row=label_row,
    empty_message="No labels found",
    disable_pagination=True,
    agent_transform=light_transform(light_labels),
    json_transform=light_transform(light_labels),
    force_json=force_light,
)
