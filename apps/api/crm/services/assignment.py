"""Owner assignment for newly captured leads."""
from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User
from ..repositories import leads as leads_repo
from ..repositories import users as users_repo


@dataclass(frozen=True)
class AgentStats:
    """Load snapshot for one sales agent."""

    user_id: str
    active_load: int
    avg_close_seconds: float = math.inf


def average_close_seconds(durations: Sequence[float]) -> float:
    """Average closing time; agents with no closed leads rank last."""

    if not durations:
        return math.inf
    return sum(durations) / len(durations)


def choose_owner(candidates: Sequence[AgentStats]) -> str | None:
    """Pick the least-loaded agent, breaking ties by fastest average close.

    Remaining ties keep candidate order, which callers supply as user creation
    order.
    """

    if not candidates:
        return None

    min_load = min(candidate.active_load for candidate in candidates)
    tied = [candidate for candidate in candidates if candidate.active_load == min_load]
    if len(tied) == 1:
        return tied[0].user_id

    # min() returns the first of equal elements, so creation order decides exact ties.
    fastest = min(tied, key=lambda candidate: candidate.avg_close_seconds)
    return fastest.user_id


async def assign_owner(session: AsyncSession) -> User | None:
    """Return the active sales user who should own the next lead."""

    agents = await users_repo.list_active_sales(session)
    if not agents:
        return None

    agent_ids = [agent.id for agent in agents]
    loads = await leads_repo.active_load_by_owner(session, agent_ids)
    min_load = min(loads.get(agent_id, 0) for agent_id in agent_ids)
    tied_ids = [agent_id for agent_id in agent_ids if loads.get(agent_id, 0) == min_load]

    durations: dict[str, list[float]] = {}
    if len(tied_ids) > 1:
        durations = await leads_repo.closed_durations_by_owner(session, tied_ids)

    stats = [
        AgentStats(
            user_id=agent_id,
            active_load=loads.get(agent_id, 0),
            avg_close_seconds=average_close_seconds(durations.get(agent_id, [])),
        )
        for agent_id in agent_ids
    ]
    chosen_id = choose_owner(stats)
    return next((agent for agent in agents if agent.id == chosen_id), None)
