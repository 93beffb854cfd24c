"""Lamp model: rarity rolls, coupon-collector rarity targets and smoothing.

The coupon-collector approximation estimates how many distinct slots a
rarity tier fills after N weighted drops:

    expected = remaining * (1 - ((remaining - 1) / remaining) ^ (N * p))

Tiers are swept from the best multiplier down, each one filling slots out of
what the better tiers left over.
"""

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Optional

from .balance import BalanceConfig
from .catalog import CATALOG, Catalog
from .models import Lamp, Rarity

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GuaranteedRarity:
    rarity: Rarity
    expected_filled: float
    total_drops: int


def _expected_filled(remaining: float, drops: float) -> float:
    if remaining <= 1:
        # ((r-1)/r)^d collapses to 0 for a single slot
        return remaining if drops > 0 else 0.0
    return remaining * (1 - ((remaining - 1) / remaining) ** drops)


class LampModel:
    """Rarity weights per lamp level and everything derived from them."""

    def __init__(
        self,
        config: BalanceConfig,
        rng: random.Random,
        catalog: Optional[Catalog] = None,
    ):
        self.config = config
        self.rng = rng
        self.catalog = catalog or CATALOG

    # ------------------------------------------------------------------
    # Rolling

    def weights_for(self, level: int) -> dict[Rarity, int]:
        """Rarity weights for a lamp level, clamped to the table."""
        row = self.catalog.lamp_level(level)
        return {Rarity(rarity_id): weight for rarity_id, weight in row.weights.items()}

    def roll_rarity(self, weights: Mapping[Rarity, int]) -> Rarity:
        """Weighted draw by cumulative subtraction in declaration order."""
        ordered = [(r, weights[r]) for r in Rarity if weights.get(r, 0) > 0]
        total = sum(w for _, w in ordered)
        if total <= 0:
            return Rarity.COMMON
        roll = self.rng.random() * total
        for rarity, weight in ordered:
            roll -= weight
            if roll <= 0:
                return rarity
        return ordered[-1][0]

    def roll_for_level(self, level: int) -> Rarity:
        """Roll a rarity from a lamp level (always common without weighting)."""
        if not self.config.features.rarity_weighting:
            return Rarity.COMMON
        return self.roll_rarity(self.weights_for(level))

    @staticmethod
    def max_rarity(weights: Mapping[Rarity, int]) -> Rarity:
        """Best rarity with a positive weight."""
        for rarity in reversed(Rarity):
            if weights.get(rarity, 0) > 0:
                return rarity
        return Rarity.COMMON

    # ------------------------------------------------------------------
    # Coupon collector

    def total_drops(self, chapter: int) -> int:
        cfg = self.config
        return cfg.base_drops_for_multiplier + (chapter - 1) * cfg.drops_per_chapter

    def _tiers_best_first(self, level: int) -> list[tuple[Rarity, float, float]]:
        """(rarity, probability, multiplier) for positive weights, best multiplier first."""
        weights = self.weights_for(level)
        total = sum(w for w in weights.values() if w > 0)
        if total <= 0:
            return []
        multipliers = self.config.rarity_multipliers
        tiers = [
            (rarity, weight / total, multipliers.get(rarity.value, 1.0))
            for rarity, weight in weights.items()
            if weight > 0
        ]
        tiers.sort(key=lambda t: (t[2], t[0].rank), reverse=True)
        return tiers

    def calculate_slot_based_rarity_multiplier(
        self, lamp_level: int, total_slots: int, chapter: int
    ) -> float:
        """Average item-power multiplier expected once all slots are filled.

        Tiers with a probability share below min_prob_for_gradual_growth are
        ignored; slots no tier fills count at 1.0.
        """
        if total_slots <= 0:
            return 1.0
        min_prob = self.config.min_prob_for_gradual_growth
        tiers = [t for t in self._tiers_best_first(lamp_level) if t[1] >= min_prob]
        if not tiers:
            return 1.0

        drops = self.total_drops(chapter)
        remaining = float(total_slots)
        total_power = 0.0
        for _, prob, multiplier in tiers:
            if remaining < 1:
                break
            filled = min(_expected_filled(remaining, drops * prob), remaining)
            total_power += filled * multiplier
            remaining -= filled
        total_power += remaining * 1.0
        return total_power / total_slots

    def target_multiplier(self, lamp_level: int, total_slots: int, chapter: int) -> float:
        if not self.config.features.rarity_weighting:
            return 1.0
        return self.calculate_slot_based_rarity_multiplier(lamp_level, total_slots, chapter)

    def update_rarity_multiplier_after_kill(
        self, lamp: Lamp, total_slots: int, chapter: int
    ) -> float:
        """Move the smoothed multiplier toward the current target.

        Rising targets are approached by 1/steps_to_target of the gap per
        call, never overshooting. A target at or below the current value
        is taken as-is. Returns the new smoothed value.
        """
        target = self.target_multiplier(lamp.level, total_slots, chapter)
        gap = target - lamp.current_rarity_multiplier
        if gap > 0:
            step = gap / self.config.steps_to_target
            lamp.current_rarity_multiplier = min(lamp.current_rarity_multiplier + step, target)
        else:
            lamp.current_rarity_multiplier = target
        return lamp.current_rarity_multiplier

    def get_guaranteed_rarity_with_expected(
        self, lamp_level: int, total_slots: int, chapter: int
    ) -> GuaranteedRarity:
        """Best tier expected to fill at least one slot on its own."""
        drops = self.total_drops(chapter)
        remaining = float(total_slots)
        for rarity, prob, _ in self._tiers_best_first(lamp_level):
            if remaining < 1:
                break
            expected = _expected_filled(remaining, drops * prob)
            if expected >= 1.0:
                return GuaranteedRarity(rarity, expected, drops)
            remaining -= expected
        return GuaranteedRarity(Rarity.COMMON, 1.0, drops)

    def guaranteed_rarity_interval(
        self, lamp_level: int, total_slots: int, chapter: int
    ) -> tuple[Rarity, int]:
        """Guaranteed tier and how many loots apart it is scheduled.

        Without rarity weighting every roll is common, so nothing is scheduled.
        """
        if not self.config.features.rarity_weighting:
            return Rarity.COMMON, 0
        guaranteed = self.get_guaranteed_rarity_with_expected(lamp_level, total_slots, chapter)
        interval = round(
            guaranteed.total_drops / guaranteed.expected_filled
            * self.config.guaranteed_rarity_interval_multiplier
        )
        return guaranteed.rarity, interval

    # ------------------------------------------------------------------
    # Levels

    def upgrade_cost(self, level: int) -> Optional[int]:
        """Gold needed to reach the next level, or None at max level."""
        next_row = self.catalog.next_lamp_level(level)
        return next_row.price if next_row is not None else None

    @staticmethod
    def create_lamp() -> Lamp:
        return Lamp(level=1, current_rarity_multiplier=1.0, base_rarity_multiplier=1.0)

    def level_up(self, lamp: Lamp) -> bool:
        """Raise the lamp one level. The smoothed multiplier is kept as the new anchor."""
        if lamp.level >= self.catalog.max_lamp_level:
            return False
        lamp.level += 1
        lamp.base_rarity_multiplier = lamp.current_rarity_multiplier
        logger.debug("Lamp upgraded to level %d", lamp.level)
        return True
