"""
Unit tests for loot.py - loot priority, guaranteed drops and cadence counters.
"""
import random

from battle_economy.balance import BalanceConfig, FeatureFlags
from battle_economy.catalog import load_catalog
from battle_economy.items import ItemGenerator
from battle_economy.lamp import LampModel
from battle_economy.loot import LootKind, LootPipeline
from battle_economy.models import DungeonProgress, Hero, Lamp, LootCounters, Rarity

# Lamp that drops rare half the time, so rare is the guaranteed tier
RARE_LAMP = load_catalog(lamp_levels={1: (0, {"common": 50, "rare": 50})})


def make_pipeline(features=None, catalog=None, seed=0, **overrides):
    config = BalanceConfig(features=features or FeatureFlags(), **overrides)
    rng = random.Random(seed)
    items = ItemGenerator(config, rng, catalog)
    return LootPipeline(config, items, LampModel(config, rng, catalog))


def only(**enabled):
    flags = {name: False for name in FeatureFlags().to_dict()}
    flags.update(enabled)
    return FeatureFlags(**flags)


class TestGuaranteedUpgrade:
    """Tests for the guaranteed upgrade cadence."""

    def test_interval_grows_with_stage(self):
        """The interval grows by one every N stages."""
        pipeline = make_pipeline()
        assert pipeline.guaranteed_upgrade_interval(1) == 4
        assert pipeline.guaranteed_upgrade_interval(28) == 6

    def test_interval_off(self):
        """With the feature off the interval is 0."""
        assert make_pipeline(only()).guaranteed_upgrade_interval(1) == 0

    def test_every_fourth_loot(self):
        """The fourth loot is a guaranteed upgrade for the weakest slot."""
        pipeline = make_pipeline(only(guaranteed_upgrade=True))
        hero, lamp, dungeon, counters = Hero(), Lamp(), DungeonProgress(), LootCounters()
        kinds = [pipeline.roll(hero, lamp, dungeon, counters).kind for _ in range(4)]
        assert kinds == [LootKind.NORMAL] * 3 + [LootKind.GUARANTEED_UPGRADE]
        assert counters.since_guaranteed_upgrade == 0
        assert counters.total_loots == 4

    def test_upgrade_is_always_equipped(self):
        """Guaranteed upgrades count as upgrades even when weaker."""
        pipeline = make_pipeline(only(guaranteed_upgrade=True))
        hero, counters = Hero(level=1), LootCounters(since_guaranteed_upgrade=3)
        result = pipeline.roll(hero, Lamp(), DungeonProgress(), counters)
        assert result.is_guaranteed_upgrade
        assert pipeline.is_upgrade(hero, result)


class TestGuaranteedRarity:
    """Tests for the scheduled guaranteed rarity drop."""

    def test_off(self):
        """With the feature off there is no guaranteed tier."""
        pipeline = make_pipeline(only(rarity_weighting=True))
        assert pipeline.guaranteed_rarity(Lamp(), DungeonProgress()) == (Rarity.COMMON, 0)

    def test_needs_rarity_weighting(self):
        """Guaranteed rarity stays idle while every roll is common."""
        pipeline = make_pipeline(only(guaranteed_rarity=True), RARE_LAMP)
        counters = LootCounters(since_guaranteed_rarity=50)
        assert pipeline.guaranteed_rarity(Lamp(level=20), DungeonProgress()) == (Rarity.COMMON, 0)
        for _ in range(20):
            result = pipeline.roll(Hero(), Lamp(level=20), DungeonProgress(), counters)
            assert result.kind is LootKind.NORMAL
            assert result.item.rarity is Rarity.COMMON

    def test_fires_when_due(self):
        """A due guaranteed rarity drop has the guaranteed tier."""
        pipeline = make_pipeline(only(rarity_weighting=True, guaranteed_rarity=True), RARE_LAMP)
        tier, interval = pipeline.guaranteed_rarity(Lamp(), DungeonProgress())
        counters = LootCounters(since_guaranteed_rarity=interval - 1)
        result = pipeline.roll(Hero(), Lamp(), DungeonProgress(), counters)
        assert tier is Rarity.RARE
        assert result.kind is LootKind.GUARANTEED_RARITY
        assert result.item.rarity is Rarity.RARE
        assert counters.since_guaranteed_rarity == 0

    def test_normal_roll_at_tier_resets(self):
        """A normal roll at or above the guaranteed tier resets its counter."""
        pipeline = make_pipeline(only(rarity_weighting=True, guaranteed_rarity=True))
        counters = LootCounters()
        for _ in range(10):
            result = pipeline.roll(Hero(), Lamp(), DungeonProgress(), counters)
            assert result.kind is LootKind.NORMAL
            assert counters.since_guaranteed_rarity == 0

    def test_upgrade_has_priority(self):
        """When both are due the guaranteed upgrade wins and the rarity stays due."""
        pipeline = make_pipeline(FeatureFlags(), RARE_LAMP)
        counters = LootCounters(since_guaranteed_upgrade=3, since_guaranteed_rarity=50)
        result = pipeline.roll(Hero(), Lamp(), DungeonProgress(), counters)
        assert result.kind is LootKind.GUARANTEED_UPGRADE
        assert counters.since_guaranteed_rarity == 51


class TestNormalLoot:
    """Tests for normal loot rolls."""

    def test_baseline_items(self):
        """With every feature off, loot is common at hero level."""
        pipeline = make_pipeline(only())
        hero = Hero(level=6)
        for _ in range(20):
            result = pipeline.roll(hero, Lamp(level=20), DungeonProgress(), LootCounters())
            assert result.item.rarity is Rarity.COMMON
            assert result.item.level == 6

    def test_empty_slot_is_upgrade(self):
        """Any item for an empty slot is an upgrade."""
        pipeline = make_pipeline()
        hero = Hero()
        result = pipeline.roll(hero, Lamp(), DungeonProgress(), LootCounters())
        assert pipeline.is_upgrade(hero, result)

    def test_weaker_item_is_not_upgrade(self):
        """A normal item weaker than the equipped one is not an upgrade."""
        pipeline = make_pipeline(only())
        hero = Hero()
        for slot_item in (pipeline.items.create_item(s, 50, Rarity.IMMORTAL)
                          for s in pipeline.items.unlocked_slots(1)):
            hero.equip(slot_item)
        result = pipeline.roll(hero, Lamp(), DungeonProgress(), LootCounters())
        assert not pipeline.is_upgrade(hero, result)

    def test_result_reports_intervals(self):
        """Loot results carry the active intervals."""
        pipeline = make_pipeline(catalog=RARE_LAMP)
        result = pipeline.roll(Hero(), Lamp(), DungeonProgress(), LootCounters())
        assert result.upgrade_interval == 4
        assert result.guaranteed_rarity is Rarity.RARE
        assert result.rarity_interval > 0
