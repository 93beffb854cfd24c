"""Loot pipeline shared by the live game and the economy tester.

Priority for each loot: guaranteed upgrade, then guaranteed rarity, then a
normal lamp roll. A normal roll at or above the guaranteed tier resets the
guaranteed-rarity counter.
"""

from dataclasses import dataclass
from enum import Enum

from .balance import BalanceConfig
from .items import ItemGenerator
from .lamp import LampModel
from .models import DungeonProgress, Hero, Item, Lamp, LootCounters, Rarity


class LootKind(Enum):
    NORMAL = "normal"
    GUARANTEED_UPGRADE = "guaranteed_upgrade"
    GUARANTEED_RARITY = "guaranteed_rarity"


@dataclass(frozen=True, slots=True)
class LootResult:
    item: Item
    kind: LootKind
    upgrade_interval: int
    guaranteed_rarity: Rarity
    rarity_interval: int

    @property
    def is_guaranteed_upgrade(self) -> bool:
        return self.kind is LootKind.GUARANTEED_UPGRADE


class LootPipeline:
    def __init__(self, config: BalanceConfig, items: ItemGenerator, lamp_model: LampModel):
        self.config = config
        self.items = items
        self.lamp_model = lamp_model

    def guaranteed_upgrade_interval(self, global_stage: int) -> int:
        """Loots between guaranteed upgrades; 0 when the feature is off."""
        cfg = self.config
        if not cfg.features.guaranteed_upgrade:
            return 0
        return (
            cfg.guaranteed_upgrade_every_n
            + global_stage // cfg.guaranteed_upgrade_increase_every_n_stages
        )

    def guaranteed_rarity(self, lamp: Lamp, dungeon: DungeonProgress) -> tuple[Rarity, int]:
        """Guaranteed tier and its interval; (common, 0) when the feature is off."""
        features = self.config.features
        if not (features.guaranteed_rarity and features.rarity_weighting):
            return Rarity.COMMON, 0
        total_slots = len(self.items.unlocked_slots(dungeon.global_stage))
        return self.lamp_model.guaranteed_rarity_interval(lamp.level, total_slots, dungeon.chapter)

    def roll(
        self,
        hero: Hero,
        lamp: Lamp,
        dungeon: DungeonProgress,
        counters: LootCounters,
    ) -> LootResult:
        """Produce one loot and advance the cadence counters."""
        counters.total_loots += 1
        counters.since_guaranteed_upgrade += 1
        counters.since_guaranteed_rarity += 1

        global_stage = dungeon.global_stage
        upgrade_interval = self.guaranteed_upgrade_interval(global_stage)
        guaranteed, rarity_interval = self.guaranteed_rarity(lamp, dungeon)

        if upgrade_interval > 0 and counters.since_guaranteed_upgrade >= upgrade_interval:
            rarity = self.lamp_model.roll_for_level(lamp.level)
            item = self.items.create_guaranteed_upgrade(hero, global_stage, rarity)
            counters.since_guaranteed_upgrade = 0
            kind = LootKind.GUARANTEED_UPGRADE
        elif rarity_interval > 0 and counters.since_guaranteed_rarity >= rarity_interval:
            item = self.items.create_guaranteed_rarity_item(hero, global_stage, guaranteed)
            counters.since_guaranteed_rarity = 0
            kind = LootKind.GUARANTEED_RARITY
        else:
            item = self._normal_item(hero, lamp, global_stage)
            if rarity_interval > 0 and item.rarity.is_at_least(guaranteed):
                counters.since_guaranteed_rarity = 0
            kind = LootKind.NORMAL

        return LootResult(item, kind, upgrade_interval, guaranteed, rarity_interval)

    def _normal_item(self, hero: Hero, lamp: Lamp, global_stage: int) -> Item:
        slot = self.items.random_slot(global_stage)
        rarity = self.lamp_model.roll_for_level(lamp.level)
        if self.config.features.rarity_weighting:
            best = self.lamp_model.max_rarity(self.lamp_model.weights_for(lamp.level))
        else:
            best = Rarity.COMMON
        level = self.items.roll_item_level(hero.level, rarity is best)
        return self.items.create_item(slot, level, rarity)

    @staticmethod
    def is_upgrade(hero: Hero, result: LootResult) -> bool:
        """Whether the tester would equip this loot."""
        item = result.item
        return result.is_guaranteed_upgrade or item.power > hero.equipped_power(item.slot)
