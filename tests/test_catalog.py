"""
Unit tests for catalog.py - table loading, validation and clamped lookups.
"""
import pytest

from battle_economy import config
from battle_economy.catalog import CATALOG, CatalogError, load_catalog


class TestDefaultCatalog:
    """Tests for the catalog built from config.py."""

    def test_slot_ratios_sum_to_one(self):
        """Every slot splits its budget completely between hp and damage."""
        for info in CATALOG.slots:
            assert info.hp_ratio + info.damage_ratio == pytest.approx(1.0)

    def test_rarities_in_declaration_order(self):
        """Rarities keep the table order, worst to best."""
        assert [r.id for r in CATALOG.rarities] == [row[0] for row in config.RARITIES]
        multipliers = [r.multiplier for r in CATALOG.rarities]
        assert multipliers == sorted(multipliers)

    def test_lamp_weights_follow_rarity_order(self):
        """Lamp weight rows list rarities in declaration order."""
        order = [r.id for r in CATALOG.rarities]
        for row in CATALOG.lamp_levels:
            keys = list(row.weights)
            assert keys == sorted(keys, key=order.index)

    def test_first_stage_slots(self):
        """Only the stage-1 slots drop at the start."""
        assert [s.id for s in CATALOG.unlocked_slots(1)] == ["weapon", "helmet", "armor"]

    def test_all_slots_unlock_eventually(self):
        """Late stages unlock every slot."""
        assert len(CATALOG.unlocked_slots(1000)) == len(CATALOG.slots)

    def test_weapon_split_power(self):
        """Weapon budget of 10 floors to 0 hp and 2 damage."""
        assert CATALOG.slot("weapon").split_power(10) == (0, 2)

    def test_split_power_damage_floor(self):
        """Damage never floors below 1."""
        hp, damage = CATALOG.slot("armor").split_power(1)
        assert damage == 1
        assert hp == 0


class TestClampedLookups:
    """Out-of-range lookups clamp to the table instead of failing."""

    def test_lamp_level_clamps_high(self):
        """Lamp levels beyond the table use the last row."""
        assert CATALOG.lamp_level(99).level == CATALOG.max_lamp_level

    def test_lamp_level_clamps_low(self):
        """Lamp level 0 uses the first row."""
        assert CATALOG.lamp_level(0).level == 1

    def test_next_lamp_level(self):
        """next_lamp_level() returns the following row or None at the top."""
        assert CATALOG.next_lamp_level(1).level == 2
        assert CATALOG.next_lamp_level(CATALOG.max_lamp_level) is None

    def test_stage_row_clamps(self):
        """Stages beyond the table reuse the last row."""
        assert CATALOG.stage_row(10_000) == CATALOG.stages[-1]
        assert CATALOG.stage_row(0) == CATALOG.stages[0]

    def test_xp_table_clamps(self):
        """XP lookups beyond the table reuse the last entry."""
        assert CATALOG.xp_for_next_level(10_000) == CATALOG.xp_to_next[-1]

    def test_unknown_rarity_raises(self):
        """Looking up an unknown rarity id is a KeyError."""
        with pytest.raises(KeyError):
            CATALOG.rarity("cursed")


class TestValidation:
    """Invalid tables fail at load time."""

    def test_catalog_error_is_value_error(self):
        """CatalogError can be caught as ValueError."""
        assert issubclass(CatalogError, ValueError)

    def test_ratios_must_sum_to_one(self):
        """A slot whose ratios do not sum to 1 is rejected."""
        with pytest.raises(CatalogError, match="ratios"):
            load_catalog(slots={"weapon": (1, 0.5, 0.6)})

    def test_needs_stage_one_slot(self):
        """At least one slot must drop from the first stage."""
        with pytest.raises(CatalogError):
            load_catalog(slots={"weapon": (2, 0.1, 0.9)})

    def test_rarity_multipliers_must_increase(self):
        """Rarity multipliers must be strictly increasing."""
        rarities = [("common", 1.0, "#fff", "Common"), ("good", 1.0, "#0f0", "Good")]
        with pytest.raises(CatalogError, match="increase"):
            load_catalog(rarities=rarities)

    def test_lamp_levels_contiguous(self):
        """Gaps in the lamp table are rejected."""
        with pytest.raises(CatalogError, match="contiguous"):
            load_catalog(lamp_levels={1: (0, {"common": 1}), 3: (10, {"common": 1})})

    def test_lamp_unknown_rarity(self):
        """Lamp weights may only reference known rarities."""
        with pytest.raises(CatalogError, match="unknown"):
            load_catalog(lamp_levels={1: (0, {"cursed": 1})})

    def test_lamp_needs_positive_weight(self):
        """A lamp row with no positive weight is rejected."""
        with pytest.raises(CatalogError):
            load_catalog(lamp_levels={1: (0, {"common": 0})})

    def test_missing_sell_prices(self):
        """Every rarity needs a sell price range."""
        with pytest.raises(CatalogError, match="Sell prices"):
            load_catalog(sell_prices={"common": (1, 2)})

    def test_custom_lamp_table(self):
        """A valid custom lamp table loads with its weights."""
        catalog = load_catalog(lamp_levels={1: (0, {"rare": 10, "common": 90})})
        assert catalog.max_lamp_level == 1
        assert list(catalog.lamp_level(1).weights) == ["common", "rare"]
