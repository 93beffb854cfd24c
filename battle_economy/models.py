"""Data models for the battle economy.

Enums for the closed rarity/slot catalogs plus the mutable game state
aggregate (hero, lamp, dungeon progress, inventory, loot counters).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from . import config
from .catalog import CATALOG, Catalog


class Rarity(Enum):
    """Item rarity tiers, declared from worst to best."""
    COMMON = "common"
    GOOD = "good"
    RARE = "rare"
    EPIC = "epic"
    MYTHIC = "mythic"
    LEGENDARY = "legendary"
    IMMORTAL = "immortal"

    @property
    def rank(self) -> int:
        return _RARITY_RANK[self]

    def is_at_least(self, other: "Rarity") -> bool:
        return self.rank >= other.rank

    @property
    def display_name(self) -> str:
        return CATALOG.rarity(self.value).name

    @property
    def color(self) -> str:
        return CATALOG.rarity(self.value).color


_RARITY_RANK: dict[Rarity, int] = {r: i for i, r in enumerate(Rarity)}


class Slot(Enum):
    """Equipment slots."""
    WEAPON = "weapon"
    HELMET = "helmet"
    ARMOR = "armor"
    GLOVES = "gloves"
    SHOES = "shoes"
    MAGIC = "magic"
    RING = "ring"
    AMULET = "amulet"
    PANTS = "pants"
    CLOAK = "cloak"
    ARTEFACT = "artefact"
    BELT = "belt"


def effective_power(hp: int, damage: int) -> int:
    """Common strength currency for items, heroes and enemies."""
    return hp + config.DAMAGE_POWER_WEIGHT * damage


@dataclass(frozen=True, slots=True)
class Item:
    """A piece of equipment. Immutable once generated."""
    id: str
    slot: Slot
    rarity: Rarity
    level: int
    hp: int
    damage: int

    @property
    def power(self) -> int:
        return effective_power(self.hp, self.damage)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "slot": self.slot.value,
            "rarity": self.rarity.value,
            "level": self.level,
            "hp": self.hp,
            "damage": self.damage,
            "power": self.power,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], catalog: Optional[Catalog] = None) -> "Item":
        """Load an item, rebuilding hp/damage from power for older saves."""
        catalog = catalog or CATALOG
        slot = Slot(data["slot"])
        hp = data.get("hp")
        damage = data.get("damage")
        if hp is None or damage is None:
            hp, damage = catalog.slot(slot.value).split_power(data["power"])
        return cls(
            id=str(data["id"]),
            slot=slot,
            rarity=Rarity(data.get("rarity", Rarity.COMMON.value)),
            level=max(1, int(data.get("level", 1))),
            hp=int(hp),
            damage=int(damage),
        )


def _empty_equipment() -> dict[Slot, Optional[Item]]:
    return {slot: None for slot in Slot}


@dataclass(slots=True)
class Hero:
    """The player character.

    max_hp and damage are derived from level and equipment by
    `recalculate()`; never assign them directly.
    """
    level: int = 1
    xp: int = 0
    hp: int = config.HERO_BASE_HP
    max_hp: int = config.HERO_BASE_HP
    damage: int = config.HERO_BASE_DAMAGE
    gold: int = 0
    lamps: int = 0
    equipment: dict[Slot, Optional[Item]] = field(default_factory=_empty_equipment)

    @property
    def base_hp(self) -> int:
        return config.HERO_BASE_HP + config.HERO_HP_PER_LEVEL * (self.level - 1)

    @property
    def base_damage(self) -> int:
        return config.HERO_BASE_DAMAGE + config.HERO_DAMAGE_PER_LEVEL * (self.level - 1)

    @property
    def power(self) -> int:
        return effective_power(self.max_hp, self.damage)

    @property
    def filled_slots(self) -> int:
        return sum(1 for item in self.equipment.values() if item is not None)

    def equipped_power(self, slot: Slot) -> int:
        item = self.equipment.get(slot)
        return item.power if item is not None else 0

    def recalculate(self) -> None:
        """Recompute max_hp/damage from base stats and equipment."""
        items = [item for item in self.equipment.values() if item is not None]
        self.max_hp = self.base_hp + sum(item.hp for item in items)
        self.damage = self.base_damage + sum(item.damage for item in items)
        if self.hp > self.max_hp:
            self.hp = self.max_hp

    def heal(self) -> None:
        self.hp = self.max_hp

    def equip(self, item: Item) -> Optional[Item]:
        """Put an item in its slot. Returns the item it replaced."""
        previous = self.equipment.get(item.slot)
        self.equipment[item.slot] = item
        self.recalculate()
        return previous

    def add_xp(self, amount: int, catalog: Optional[Catalog] = None) -> int:
        """Add XP and apply level-ups. Returns the number of levels gained."""
        catalog = catalog or CATALOG
        self.xp += amount
        gained = 0
        needed = catalog.xp_for_next_level(self.level)
        while self.xp >= needed:
            self.xp -= needed
            self.level += 1
            gained += 1
            needed = catalog.xp_for_next_level(self.level)
        if gained:
            self.recalculate()
        return gained


@dataclass(slots=True)
class Lamp:
    """The loot lamp. Its level selects a rarity weight row."""
    level: int = 1
    current_rarity_multiplier: float = 1.0
    base_rarity_multiplier: float = 1.0


@dataclass(slots=True)
class DungeonProgress:
    chapter: int = 1
    stage: int = 1
    current_enemy_power: int = 0
    difficulty_modifier: float = 0.0
    last_defeat_stage: int = 0

    @property
    def global_stage(self) -> int:
        return (self.chapter - 1) * config.STAGES_PER_CHAPTER + self.stage

    @property
    def stage_id(self) -> int:
        """Packed chapter/stage id used by the defeat penalty guard."""
        return self.chapter * 100 + self.stage


@dataclass(slots=True)
class LootCounters:
    """Loot cadence counters for guaranteed drops."""
    since_guaranteed_upgrade: int = 0
    since_guaranteed_rarity: int = 0
    total_loots: int = 0


@dataclass(slots=True)
class GameState:
    """Aggregate root of a single game.

    last_battle_result and last_looted_item are UI-facing and not saved.
    """
    hero: Hero = field(default_factory=Hero)
    lamp: Lamp = field(default_factory=Lamp)
    dungeon: DungeonProgress = field(default_factory=DungeonProgress)
    inventory: list[Item] = field(default_factory=list)
    loot_counters: LootCounters = field(default_factory=LootCounters)
    last_battle_result: Optional[Any] = None
    last_looted_item: Optional[Item] = None

    def find_inventory_item(self, item_id: str) -> Optional[Item]:
        for item in self.inventory:
            if item.id == item_id:
                return item
        return None

    def to_dict(self) -> dict[str, Any]:
        hero = self.hero
        return {
            "hero": {
                "level": hero.level,
                "xp": hero.xp,
                "hp": hero.hp,
                "max_hp": hero.max_hp,
                "damage": hero.damage,
                "gold": hero.gold,
                "lamps": hero.lamps,
                "equipment": {
                    slot.value: item.to_dict() if item is not None else None
                    for slot, item in hero.equipment.items()
                },
            },
            "lamp": {
                "level": self.lamp.level,
                "current_rarity_multiplier": self.lamp.current_rarity_multiplier,
                "base_rarity_multiplier": self.lamp.base_rarity_multiplier,
            },
            "dungeon": {
                "chapter": self.dungeon.chapter,
                "stage": self.dungeon.stage,
                "current_enemy_power": self.dungeon.current_enemy_power,
                "difficulty_modifier": self.dungeon.difficulty_modifier,
                "last_defeat_stage": self.dungeon.last_defeat_stage,
            },
            "inventory": [item.to_dict() for item in self.inventory],
            "loot_counters": {
                "since_guaranteed_upgrade": self.loot_counters.since_guaranteed_upgrade,
                "since_guaranteed_rarity": self.loot_counters.since_guaranteed_rarity,
                "total_loots": self.loot_counters.total_loots,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], catalog: Optional[Catalog] = None) -> "GameState":
        """Load a saved state, filling defaults for fields older saves lack.

        Raises:
            KeyError, TypeError, ValueError: if the data is not a game state
        """
        catalog = catalog or CATALOG
        hero_data = data["hero"]

        equipment = _empty_equipment()
        for item_data in (hero_data.get("equipment") or {}).values():
            if item_data:
                item = Item.from_dict(item_data, catalog)
                equipment[item.slot] = item

        hero = Hero(
            level=max(1, int(hero_data.get("level", 1))),
            xp=int(hero_data.get("xp", 0)),
            hp=int(hero_data.get("hp", 0)),
            gold=int(hero_data.get("gold", 0)),
            lamps=int(hero_data.get("lamps", 0)),
            equipment=equipment,
        )
        hero.recalculate()
        if hero.hp <= 0:
            hero.heal()

        lamp_data = data.get("lamp") or {}
        current = float(lamp_data.get("current_rarity_multiplier", 1.0))
        lamp = Lamp(
            level=min(max(1, int(lamp_data.get("level", 1))), catalog.max_lamp_level),
            current_rarity_multiplier=current,
            base_rarity_multiplier=float(lamp_data.get("base_rarity_multiplier", current)),
        )

        dungeon_data = data.get("dungeon") or {}
        dungeon = DungeonProgress(
            chapter=max(1, int(dungeon_data.get("chapter", 1))),
            stage=min(max(1, int(dungeon_data.get("stage", 1))), config.STAGES_PER_CHAPTER),
            difficulty_modifier=float(dungeon_data.get("difficulty_modifier", 0.0)),
            last_defeat_stage=int(dungeon_data.get("last_defeat_stage", 0)),
        )
        dungeon.current_enemy_power = int(
            dungeon_data.get("current_enemy_power")
            or catalog.stage_row(dungeon.global_stage).enemy_power
        )

        counters_data = data.get("loot_counters") or {}
        counters = LootCounters(
            since_guaranteed_upgrade=int(counters_data.get("since_guaranteed_upgrade", 0)),
            since_guaranteed_rarity=int(counters_data.get("since_guaranteed_rarity", 0)),
            total_loots=int(counters_data.get("total_loots", 0)),
        )

        return cls(
            hero=hero,
            lamp=lamp,
            dungeon=dungeon,
            inventory=[Item.from_dict(d, catalog) for d in data.get("inventory") or []],
            loot_counters=counters,
        )
