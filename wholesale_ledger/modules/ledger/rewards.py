"""
ledger/rewards.py

Automatic reward lines from reward rules ("buy 10 Box, get 1 Cap").

A rule fires for a sold line of its main product when the line is quoted in
the rule's unit:
    rewards given = floor(quantity_sold / main_product_quantity) * reward_quantity

Reward lines never touch product stock or the reward catalog quantity.
"""
from __future__ import annotations

import math
from typing import Collection, Iterable, List, Mapping

from ...database.repositories.ledger_repo import LedgerItem, RewardItem
from ...database.repositories.rewards_repo import Reward, RewardRule
from ...utils.helpers import round_money
from .calculations import normalize_item

__all__ = ["derive_auto_rewards", "reconcile_reward_items"]


def derive_auto_rewards(
    items: Iterable[LedgerItem],
    rules: Mapping[int, RewardRule],
    rewards: Mapping[int, Reward],
) -> List[RewardItem]:
    """One reward line per qualifying sold line, in item order."""
    out: List[RewardItem] = []
    for item in items:
        rule = rules.get(item.product_id)
        if rule is None or rule.main_product_unit != item.unit:
            continue
        reward = rewards.get(rule.reward_id)
        if reward is None:
            continue
        sold = normalize_item(item).quantity_sold
        given = math.floor(sold / float(rule.main_product_quantity)) * float(rule.reward_quantity)
        if given <= 0:
            continue
        out.append(
            RewardItem(
                reward_id=int(reward.reward_id),
                reward_name=reward.name,
                unit=reward.unit,
                price_per_unit=float(reward.selling_price),
                quantity_sold=float(given),
                total_price=round_money(given * float(reward.selling_price)),
                main_product_id=item.product_id,
                purchase_price_per_unit=float(reward.purchase_price),
            )
        )
    return out


def reconcile_reward_items(
    current: Iterable[RewardItem],
    automatic: Iterable[RewardItem],
    modified_ids: Collection[int],
) -> List[RewardItem]:
    """
    Merge freshly derived automatic rewards into the entry's reward lines.

    Kept as they are: custom rewards (no main product) and automatic rewards
    the user edited by hand (reward_id in modified_ids). Every other automatic
    reward is replaced by the fresh derivation.
    """
    modified = {int(x) for x in modified_ids}
    current = list(current)
    custom = [r for r in current if r.main_product_id is None]
    kept_auto = [r for r in current if r.main_product_id is not None and r.reward_id in modified]
    fresh = [r for r in automatic if r.reward_id not in modified]
    return custom + kept_auto + fresh
