"""Agent listing."""

from __future__ import annotations

from ..models import Agent
from ..output.pagination import ListConfig, ListContext, ListResult
from .light import force_light, light_agents, light_transform


def fetch_agents(ctx: ListContext, client, page: int, page_size: int) -> ListResult[Agent]:
    return ListResult(items=client.list_agents(), has_more=False)


def agent_row(agent: Agent) -> list[str]:
    return [str(agent.id), agent.name, agent.email, agent.role, agent.availability_status]


LIST_CONFIG: ListConfig[Agent] = ListConfig(
    fetch=fetch_agents,
    headers=("ID", "NAME", "EMAIL", "ROLE", "AVAILABILITY_STATUS"),
    row=agent_row,
    empty_message="No agents found",
    disable_pagination=True,
    agent_transform=light_transform(light_agents),
    json_transform=light_transform(light_agents),
    force_json=force_light,
)
