"""Immutable, validated catalogs built from the balance tables.

The tables in config.py are loaded once at import into frozen dataclasses.
Invalid data (ratios not summing to 1, non-monotonic rarity multipliers,
gaps in the lamp levels) fails at load time instead of surfacing later as
odd simulation results.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional

from . import config


class CatalogError(ValueError):
    """Raised when a balance table fails validation."""


@dataclass(frozen=True, slots=True)
class RarityInfo:
    """A rarity tier as declared in the rarity table."""
    id: str
    multiplier: float
    color: str
    name: str


@dataclass(frozen=True, slots=True)
class SlotInfo:
    """An equipment slot and its HP/damage split."""
    id: str
    unlock_stage: int
    hp_ratio: float
    damage_ratio: float

    @property
    def effective_ratio(self) -> float:
        """Effective power produced per point of internal power."""
        return self.hp_ratio + config.DAMAGE_POWER_WEIGHT * self.damage_ratio

    def split_power(self, power: float) -> tuple[int, int]:
        """Split an effective power budget into (hp, damage) for this slot."""
        internal_power = power / self.effective_ratio
        hp = math.floor(internal_power * self.hp_ratio)
        damage = max(1, math.floor(internal_power * self.damage_ratio))
        return hp, damage


@dataclass(frozen=True, slots=True)
class LampLevel:
    """One row of the lamp table."""
    level: int
    price: int
    weights: Mapping[str, int]


@dataclass(frozen=True, slots=True)
class StageRow:
    """Enemy power and XP reward for one global stage."""
    global_stage: int
    enemy_power: int
    xp_reward: int


@dataclass(frozen=True, slots=True)
class Catalog:
    """All static game data in validated form."""
    rarities: tuple[RarityInfo, ...]
    slots: tuple[SlotInfo, ...]
    lamp_levels: tuple[LampLevel, ...]
    stages: tuple[StageRow, ...]
    xp_to_next: tuple[int, ...]
    sell_prices: Mapping[str, tuple[int, int]]

    @property
    def max_lamp_level(self) -> int:
        return self.lamp_levels[-1].level

    def rarity(self, rarity_id: str) -> RarityInfo:
        for info in self.rarities:
            if info.id == rarity_id:
                return info
        raise KeyError(rarity_id)

    def slot(self, slot_id: str) -> SlotInfo:
        for info in self.slots:
            if info.id == slot_id:
                return info
        raise KeyError(slot_id)

    def lamp_level(self, level: int) -> LampLevel:
        """Lamp row for a level, clamped to the table range."""
        index = min(max(level, 1), len(self.lamp_levels)) - 1
        return self.lamp_levels[index]

    def next_lamp_level(self, level: int) -> Optional[LampLevel]:
        """Row for level + 1, or None when already at the top."""
        if level >= self.max_lamp_level:
            return None
        return self.lamp_levels[level]

    def stage_row(self, global_stage: int) -> StageRow:
        """Stage row, clamped to the first/last row outside the table."""
        index = min(max(global_stage, 1), len(self.stages)) - 1
        return self.stages[index]

    def xp_for_next_level(self, level: int) -> int:
        """XP needed to advance from `level`, clamped to the last row."""
        index = min(max(level, 1), len(self.xp_to_next)) - 1
        return self.xp_to_next[index]

    def unlocked_slots(self, global_stage: int) -> list[SlotInfo]:
        """Slots that can drop at the given global stage, in catalog order."""
        return [s for s in self.slots if s.unlock_stage <= global_stage]


def _validate_rarities(rarities: tuple[RarityInfo, ...]) -> None:
    if not rarities:
        raise CatalogError("Rarity table is empty")
    previous = None
    for info in rarities:
        if info.multiplier <= 0:
            raise CatalogError(f"Rarity '{info.id}' has non-positive multiplier")
        if previous is not None and info.multiplier <= previous.multiplier:
            raise CatalogError(
                f"Rarity multipliers must increase: '{info.id}' ({info.multiplier}) "
                f"<= '{previous.id}' ({previous.multiplier})"
            )
        previous = info


def _validate_slots(slots: tuple[SlotInfo, ...]) -> None:
    if not slots:
        raise CatalogError("Slot table is empty")
    for info in slots:
        if info.hp_ratio < 0 or info.damage_ratio < 0:
            raise CatalogError(f"Slot '{info.id}' has a negative ratio")
        if not math.isclose(info.hp_ratio + info.damage_ratio, 1.0, abs_tol=1e-9):
            raise CatalogError(
                f"Slot '{info.id}' ratios sum to {info.hp_ratio + info.damage_ratio}, expected 1"
            )
        if info.unlock_stage < 1:
            raise CatalogError(f"Slot '{info.id}' unlock stage must be >= 1")
    if min(s.unlock_stage for s in slots) != 1:
        raise CatalogError("At least one slot must be unlocked at stage 1")


def _validate_lamp_levels(levels: tuple[LampLevel, ...], rarity_ids: set[str]) -> None:
    if not levels:
        raise CatalogError("Lamp table is empty")
    for expected, row in enumerate(levels, 1):
        if row.level != expected:
            raise CatalogError(f"Lamp levels must be contiguous from 1, found {row.level} at {expected}")
        unknown = set(row.weights) - rarity_ids
        if unknown:
            raise CatalogError(f"Lamp level {row.level} references unknown rarities {sorted(unknown)}")
        if any(w < 0 for w in row.weights.values()):
            raise CatalogError(f"Lamp level {row.level} has a negative weight")
        if sum(row.weights.values()) <= 0:
            raise CatalogError(f"Lamp level {row.level} has no positive weight")


def load_catalog(
    rarities: Optional[list[tuple[str, float, str, str]]] = None,
    slots: Optional[dict[str, tuple[int, float, float]]] = None,
    lamp_levels: Optional[dict[int, tuple[int, dict[str, int]]]] = None,
    stage_table: Optional[list[tuple[int, int]]] = None,
    xp_table: Optional[list[int]] = None,
    sell_prices: Optional[dict[str, tuple[int, int]]] = None,
) -> Catalog:
    """Build and validate a catalog. Defaults come from config.py.

    Raises:
        CatalogError: if any table is invalid
    """
    rarities = config.RARITIES if rarities is None else rarities
    slots = config.SLOTS if slots is None else slots
    lamp_levels = config.LAMP_LEVELS if lamp_levels is None else lamp_levels
    stage_table = config.STAGE_TABLE if stage_table is None else stage_table
    xp_table = config.XP_TABLE if xp_table is None else xp_table
    sell_prices = config.SELL_PRICES if sell_prices is None else sell_prices

    rarity_infos = tuple(RarityInfo(*row) for row in rarities)
    _validate_rarities(rarity_infos)
    rarity_order = [r.id for r in rarity_infos]

    slot_infos = tuple(
        SlotInfo(slot_id, unlock, hp_ratio, damage_ratio)
        for slot_id, (unlock, hp_ratio, damage_ratio) in slots.items()
    )
    _validate_slots(slot_infos)

    # Weights are stored in rarity declaration order so rolls are reproducible
    lamp_rows = tuple(
        LampLevel(
            level=level,
            price=price,
            weights=MappingProxyType({
                r: weights[r] for r in rarity_order if r in weights
            } | {r: w for r, w in weights.items() if r not in rarity_order}),
        )
        for level, (price, weights) in sorted(lamp_levels.items())
    )
    _validate_lamp_levels(lamp_rows, set(rarity_order))

    if not stage_table:
        raise CatalogError("Stage table is empty")
    stage_rows = tuple(
        StageRow(index, power, xp) for index, (power, xp) in enumerate(stage_table, 1)
    )
    if not xp_table or any(xp <= 0 for xp in xp_table):
        raise CatalogError("XP table must be non-empty with positive entries")

    missing = set(rarity_order) - set(sell_prices)
    if missing:
        raise CatalogError(f"Sell prices missing for {sorted(missing)}")

    return Catalog(
        rarities=rarity_infos,
        slots=slot_infos,
        lamp_levels=lamp_rows,
        stages=stage_rows,
        xp_to_next=tuple(xp_table),
        sell_prices=MappingProxyType(dict(sell_prices)),
    )


CATALOG: Catalog = load_catalog()
