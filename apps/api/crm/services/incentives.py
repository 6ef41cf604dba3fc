"""Sales-target bookkeeping derived from Won leads."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.lead import LeadStage
from ..models.user import User
from ..repositories import leads as leads_repo
from ..repositories import users as users_repo

logger = logging.getLogger(__name__)


def is_incentive_eligible(sales_target: int | None, won_count: int) -> bool:
    """An agent qualifies once a positive target has been met."""

    target = sales_target or 0
    return target > 0 and won_count >= target


def apply_won_count(user: User, won_count: int) -> bool:
    """Refresh the cached aggregate on ``user``; return True if anything changed."""

    eligible = is_incentive_eligible(user.sales_target, won_count)
    if user.sales_achieved == won_count and user.incentive_eligible == eligible:
        return False
    user.sales_achieved = won_count
    user.incentive_eligible = eligible
    return True


async def recompute_incentive(session: AsyncSession, user_id: str | None) -> bool:
    """Recount the user's Won leads and persist the aggregate only when it moved."""

    if not user_id:
        return False
    user = await users_repo.get_by_id(session, user_id)
    if user is None:
        return False

    won_count = await leads_repo.count_for_owner(session, user_id, stage=LeadStage.WON)
    changed = apply_won_count(user, won_count)
    if changed:
        session.add(user)
        logger.info(
            "Incentive aggregate for user %s: achieved=%s eligible=%s",
            user_id,
            user.sales_achieved,
            user.incentive_eligible,
        )
    return changed
