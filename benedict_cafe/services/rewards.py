import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from benedict_cafe.errors import ApiError
from benedict_cafe.models.schemas import REWARD_CATEGORY_OTHER, PointsBalance, Reward, RewardsResponse
from benedict_cafe.services.api_client import ApiClient


logger = logging.getLogger(__name__)

CONTENT_REWARDS = "content/rewards"
CUSTOMER_ME = "customers/me"

ALL = "all"
REWARD_CATEGORIES = {
    "drinks": "Напитки",
    "food": "Еда",
    "merchandise": "Мерч",
    "experiences": "Впечатления",
    REWARD_CATEGORY_OTHER: "Другое",
}
SORT_OPTIONS = ("points-asc", "points-desc", "name-asc", "name-desc")
AVAILABILITY_OPTIONS = (ALL, "available", "can-redeem")


def category_of(reward: Reward) -> str:
    return reward.category if reward.category in REWARD_CATEGORIES else REWARD_CATEGORY_OTHER


def categorize_rewards(rewards: Iterable[Reward]) -> Dict[str, List[Reward]]:
    categories: Dict[str, List[Reward]] = {name: [] for name in REWARD_CATEGORIES}
    for reward in rewards:
        categories[category_of(reward)].append(reward)
    return categories


@dataclass
class RewardFilter:
    category: str = ALL
    sort: str = "points-asc"
    availability: str = ALL

    @classmethod
    def parse(cls, args: Optional[str]) -> "RewardFilter":
        """Read command words in any order; unknown words are ignored."""
        result = cls()
        for word in (args or "").lower().split():
            if word in REWARD_CATEGORIES:
                result.category = word
            elif word in SORT_OPTIONS:
                result.sort = word
            elif word in AVAILABILITY_OPTIONS:
                result.availability = word
        return result

    @property
    def is_default(self) -> bool:
        return self == RewardFilter()


def filter_rewards(
    rewards: Iterable[Reward],
    reward_filter: RewardFilter,
    points: Optional[int] = None,
    today: Optional[date] = None,
) -> List[Reward]:
    today = today or date.today()
    result = list(rewards)

    if reward_filter.category != ALL:
        result = [r for r in result if category_of(r) == reward_filter.category]

    if reward_filter.availability == "available":
        result = [r for r in result if r.is_available(today)]
    elif reward_filter.availability == "can-redeem":
        if points is None:
            return []
        result = [r for r in result if r.is_available(today) and r.points_cost <= points]

    field, _, direction = reward_filter.sort.partition("-")

    def sort_key(reward: Reward):
        if field == "name":
            return reward.title.casefold()
        return (reward.points_cost, reward.title.casefold())

    return sorted(result, key=sort_key, reverse=direction == "desc")


class RewardsClient:
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_rewards(self) -> List[Reward]:
        """The public catalog; an empty list if anything goes wrong."""
        try:
            data = await self.api.get(CONTENT_REWARDS, default_error="Failed to load rewards")
            response = RewardsResponse.model_validate(data)
        except ApiError as e:
            logger.error(f"Error fetching rewards: {e}")
            return []
        except ValidationError as e:
            logger.error(f"Malformed rewards payload: {e.error_count()} errors")
            return []

        if not response.success:
            logger.error("Rewards endpoint reported failure")
            return []
        return response.rewards

    async def get_balance(self, token: Optional[str]) -> Optional[PointsBalance]:
        if not token:
            return None
        try:
            data = await self.api.get(CUSTOMER_ME, token=token, default_error="Failed to load profile")
        except ApiError as e:
            logger.warning(f"Points balance unavailable: {e}")
            return None

        customer = data.get("customer") if isinstance(data, dict) and data.get("success") else None
        if not isinstance(customer, dict):
            return None
        try:
            return PointsBalance.model_validate(customer)
        except ValidationError as e:
            logger.warning(f"Malformed customer profile: {e.error_count()} errors")
            return None
