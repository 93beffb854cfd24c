"""Item generation: stats from (slot, level, rarity) and loot item factories."""

import random
from dataclasses import dataclass
from typing import Optional

from .balance import BalanceConfig
from .catalog import CATALOG, Catalog
from .models import Hero, Item, Rarity, Slot, effective_power


@dataclass(frozen=True, slots=True)
class ItemStats:
    hp: int
    damage: int
    power: int


class ItemGenerator:
    """Turns (slot, level, rarity) into concrete items.

    Power budget for an item:
        target = base_power_per_level * growth^(level-1) * rarity_multiplier
    optionally scaled by a uniform variance factor, then split into hp and
    damage by the slot's ratios so that hp + 4*damage lands on the target.
    """

    def __init__(
        self,
        config: BalanceConfig,
        rng: random.Random,
        catalog: Optional[Catalog] = None,
    ):
        self.config = config
        self.rng = rng
        self.catalog = catalog or CATALOG

    def target_power(self, level: int, rarity: Rarity) -> float:
        """Power budget before variance."""
        cfg = self.config
        multiplier = cfg.rarity_multipliers.get(rarity.value, 1.0)
        return cfg.base_power_per_level * cfg.power_growth_per_level ** (level - 1) * multiplier

    def apply_variance(self, power: float) -> float:
        variance = self.config.power_variance
        if not self.config.features.power_variance or variance <= 0:
            return power
        return power * (1 + (self.rng.random() * 2 - 1) * variance)

    def generate_stats(self, slot: Slot, level: int, rarity: Rarity) -> ItemStats:
        """Compute hp/damage/power for an item.

        Damage never drops below 1, so power may differ slightly from the
        budget after flooring.
        """
        actual = self.apply_variance(self.target_power(level, rarity))
        hp, damage = self.catalog.slot(slot.value).split_power(actual)
        return ItemStats(hp=hp, damage=damage, power=effective_power(hp, damage))

    def roll_item_level(self, anchor: int, is_max_rarity: bool) -> int:
        """Roll an item level in [anchor - offset, anchor].

        The best rarity the lamp can currently give uses the tighter
        max_rarity_level_offset.
        """
        anchor = max(1, anchor)
        if not self.config.features.item_level_range:
            return anchor
        offset = self.config.max_rarity_level_offset if is_max_rarity else self.config.min_level_offset
        low = max(1, anchor - offset)
        return self.rng.randint(low, anchor)

    def create_item(self, slot: Slot, level: int, rarity: Rarity) -> Item:
        stats = self.generate_stats(slot, level, rarity)
        return Item(
            id=f"item_{self.rng.getrandbits(48):012x}",
            slot=slot,
            rarity=rarity,
            level=level,
            hp=stats.hp,
            damage=stats.damage,
        )

    def unlocked_slots(self, global_stage: int) -> list[Slot]:
        return [Slot(info.id) for info in self.catalog.unlocked_slots(global_stage)]

    def random_slot(self, global_stage: int) -> Slot:
        return self.rng.choice(self.unlocked_slots(global_stage))

    def weakest_slot(self, hero: Hero, global_stage: int) -> Slot:
        """Unlocked slot with the lowest equipped power (empty counts as 0).

        Ties resolve to the earliest slot in catalog order.
        """
        return min(self.unlocked_slots(global_stage), key=hero.equipped_power)

    def create_guaranteed_upgrade(self, hero: Hero, global_stage: int, rarity: Rarity) -> Item:
        """Item for the hero's weakest slot at the hero's level."""
        return self.create_item(self.weakest_slot(hero, global_stage), hero.level, rarity)

    def create_guaranteed_rarity_item(self, hero: Hero, global_stage: int, rarity: Rarity) -> Item:
        """Item of a fixed rarity for a random unlocked slot at the hero's level."""
        return self.create_item(self.random_slot(global_stage), hero.level, rarity)
