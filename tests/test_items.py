"""
Unit tests for items.py - item stat generation and loot item factories.
"""
import random

import pytest

from battle_economy.balance import BalanceConfig, FeatureFlags
from battle_economy.items import ItemGenerator, ItemStats
from battle_economy.models import Hero, Rarity, Slot


def make_generator(seed=0, **overrides):
    return ItemGenerator(BalanceConfig(**overrides), random.Random(seed))


class TestGenerateStats:
    """Tests for power budget and hp/damage split."""

    def test_weapon_level_one(self):
        """Common level-1 weapon with base 10, growth 1.5, no variance."""
        gen = make_generator(base_power_per_level=10, power_growth_per_level=1.5, power_variance=0.0)
        assert gen.generate_stats(Slot.WEAPON, 1, Rarity.COMMON) == ItemStats(hp=0, damage=2, power=8)

    def test_weapon_with_variance_feature_off(self):
        """Turning the variance feature off gives the same exact budget."""
        gen = make_generator(
            base_power_per_level=10,
            power_growth_per_level=1.5,
            features=FeatureFlags(power_variance=False),
        )
        assert gen.generate_stats(Slot.WEAPON, 1, Rarity.COMMON).power == 8

    def test_power_is_hp_plus_four_damage(self):
        """Reported power is recomputed from the floored stats."""
        gen = make_generator(seed=3)
        for slot in Slot:
            for level in (1, 7, 25):
                stats = gen.generate_stats(slot, level, Rarity.EPIC)
                assert stats.power == stats.hp + 4 * stats.damage

    def test_target_power_growth(self):
        """Budget grows geometrically with level."""
        gen = make_generator(base_power_per_level=10, power_growth_per_level=1.5)
        assert gen.target_power(3, Rarity.COMMON) == pytest.approx(22.5)

    def test_target_power_rarity(self):
        """Budget scales with the rarity multiplier."""
        gen = make_generator(base_power_per_level=10)
        assert gen.target_power(1, Rarity.RARE) == pytest.approx(22.5)

    def test_variance_bounds(self):
        """Variance keeps the budget within +-power_variance."""
        gen = make_generator(seed=5, power_variance=0.15)
        for _ in range(1000):
            assert 85 <= gen.apply_variance(100) <= 115

    def test_damage_heavy_slot_has_more_power(self):
        """Damage-heavy slots carry more power for the same budget."""
        gen = make_generator(power_variance=0.0, base_power_per_level=1000)
        weapon = gen.generate_stats(Slot.WEAPON, 1, Rarity.COMMON)
        armor = gen.generate_stats(Slot.ARMOR, 1, Rarity.COMMON)
        assert weapon.damage > armor.damage
        assert armor.hp > weapon.hp


class TestItemLevel:
    """Tests for roll_item_level()."""

    def test_range_below_anchor(self):
        """Normal items roll within min_level_offset below the anchor."""
        gen = make_generator(seed=1)
        levels = {gen.roll_item_level(10, is_max_rarity=False) for _ in range(500)}
        assert levels == set(range(5, 11))

    def test_max_rarity_uses_tighter_range(self):
        """The lamp's best rarity rolls within max_rarity_level_offset."""
        gen = make_generator(seed=1)
        levels = {gen.roll_item_level(10, is_max_rarity=True) for _ in range(500)}
        assert levels == {8, 9, 10}

    def test_never_below_one(self):
        """Low anchors clamp the range at level 1."""
        gen = make_generator(seed=1)
        assert all(gen.roll_item_level(2, False) >= 1 for _ in range(100))

    def test_feature_off_uses_anchor(self):
        """Without the level range feature items are exactly the anchor level."""
        gen = make_generator(features=FeatureFlags(item_level_range=False))
        assert gen.roll_item_level(10, False) == 10


class TestItemFactories:
    """Tests for create_item() and the guaranteed item factories."""

    def test_create_item_ids_unique(self):
        """Item ids come from the generator's RNG and do not repeat."""
        gen = make_generator()
        ids = {gen.create_item(Slot.WEAPON, 1, Rarity.COMMON).id for _ in range(200)}
        assert len(ids) == 200

    def test_same_seed_same_items(self):
        """The same seed reproduces the same items."""
        a = make_generator(seed=9).create_item(Slot.RING, 4, Rarity.RARE)
        b = make_generator(seed=9).create_item(Slot.RING, 4, Rarity.RARE)
        assert a == b

    def test_random_slot_only_unlocked(self):
        """Random slots are drawn only from unlocked slots."""
        gen = make_generator(seed=2)
        slots = {gen.random_slot(1) for _ in range(200)}
        assert slots == {Slot.WEAPON, Slot.HELMET, Slot.ARMOR}

    def test_weakest_slot_prefers_empty(self):
        """An empty unlocked slot is the weakest, first in catalog order."""
        gen = make_generator()
        hero = Hero()
        hero.equip(gen.create_item(Slot.WEAPON, 5, Rarity.EPIC))
        assert gen.weakest_slot(hero, 1) == Slot.HELMET

    def test_guaranteed_upgrade_targets_weakest_slot(self):
        """Guaranteed upgrades fill the weakest slot at hero level."""
        gen = make_generator()
        hero = Hero(level=4)
        hero.equip(gen.create_item(Slot.WEAPON, 4, Rarity.COMMON))
        hero.equip(gen.create_item(Slot.HELMET, 4, Rarity.COMMON))
        item = gen.create_guaranteed_upgrade(hero, 1, Rarity.GOOD)
        assert item.slot == Slot.ARMOR
        assert item.level == 4
        assert item.rarity == Rarity.GOOD

    def test_guaranteed_rarity_item(self):
        """Guaranteed rarity items carry the requested rarity at hero level."""
        gen = make_generator()
        item = gen.create_guaranteed_rarity_item(Hero(level=7), 1, Rarity.MYTHIC)
        assert item.rarity == Rarity.MYTHIC
        assert item.level == 7
