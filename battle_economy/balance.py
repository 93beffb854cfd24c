"""Tunable balance parameters.

A BalanceConfig is an explicit value passed into every core object. Core
objects read it on each call, so a tuning UI can build a new config with
`with_overrides()` and rerun without rebuilding anything else.
"""

import random
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Optional

from .catalog import CATALOG, Catalog


def _default_rarity_multipliers() -> dict[str, float]:
    return {r.id: r.multiplier for r in CATALOG.rarities}


@dataclass(slots=True)
class FeatureFlags:
    """Independently togglable loot mechanics."""
    item_level_range: bool = True     # item level rolled below hero level
    power_variance: bool = True       # +-variance on item power
    guaranteed_upgrade: bool = True   # every Nth loot fills the weakest slot
    rarity_weighting: bool = True     # lamp weights decide rarity
    guaranteed_rarity: bool = True    # coupon-collector scheduled rare drop

    def to_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(slots=True)
class BalanceConfig:
    """Every numeric tunable of the economy."""
    # Item power
    base_power_per_level: float = 10.0
    power_growth_per_level: float = 1.15
    power_variance: float = 0.15
    min_level_offset: int = 5
    max_rarity_level_offset: int = 2

    # Guaranteed upgrade cadence
    guaranteed_upgrade_every_n: int = 4
    guaranteed_upgrade_increase_every_n_stages: int = 14
    guaranteed_rarity_interval_multiplier: float = 1.0

    rarity_multipliers: dict[str, float] = field(default_factory=_default_rarity_multipliers)

    # Adaptive difficulty
    difficulty_enabled: bool = True
    difficulty_on_victory: float = 0.01
    difficulty_on_defeat: float = -0.02

    boss_power_multiplier: float = 1.5

    # Smoothed rarity multiplier (coupon collector)
    min_prob_for_gradual_growth: float = 0.02
    steps_to_target: int = 20
    base_drops_for_multiplier: int = 10
    drops_per_chapter: int = 2

    # Enemy waves
    hp_to_damage_ratio: float = 6.0
    min_enemies: int = 1
    max_enemies: int = 3

    # Rewards
    gold_per_enemy: int = 10
    gold_per_stage_clear: int = 40
    lamps_per_stage_clear: int = 1
    starting_lamps: int = 5

    features: FeatureFlags = field(default_factory=FeatureFlags)

    def validate(self) -> None:
        """Check parameter ranges.

        Raises:
            ValueError: if any parameter is out of range
        """
        if self.base_power_per_level <= 0:
            raise ValueError("base_power_per_level must be positive")
        if self.power_growth_per_level <= 0:
            raise ValueError("power_growth_per_level must be positive")
        if not 0 <= self.power_variance < 1:
            raise ValueError("power_variance must be in [0, 1)")
        if self.min_level_offset < 0 or self.max_rarity_level_offset < 0:
            raise ValueError("level offsets must be >= 0")
        if self.guaranteed_upgrade_every_n < 1:
            raise ValueError("guaranteed_upgrade_every_n must be >= 1")
        if self.guaranteed_upgrade_increase_every_n_stages < 1:
            raise ValueError("guaranteed_upgrade_increase_every_n_stages must be >= 1")
        if self.guaranteed_rarity_interval_multiplier < 0:
            raise ValueError("guaranteed_rarity_interval_multiplier must be >= 0")
        if self.steps_to_target < 1:
            raise ValueError("steps_to_target must be >= 1")
        if self.base_drops_for_multiplier < 1:
            raise ValueError("base_drops_for_multiplier must be >= 1")
        if self.drops_per_chapter < 0:
            raise ValueError("drops_per_chapter must be >= 0")
        if self.min_prob_for_gradual_growth < 0:
            raise ValueError("min_prob_for_gradual_growth must be >= 0")
        if self.boss_power_multiplier <= 0:
            raise ValueError("boss_power_multiplier must be positive")
        if self.hp_to_damage_ratio <= 0:
            raise ValueError("hp_to_damage_ratio must be positive")
        if not 1 <= self.min_enemies <= self.max_enemies <= 3:
            raise ValueError("enemy counts must satisfy 1 <= min_enemies <= max_enemies <= 3")
        for name in ("gold_per_enemy", "gold_per_stage_clear", "lamps_per_stage_clear", "starting_lamps"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        for rarity_id, multiplier in self.rarity_multipliers.items():
            if multiplier <= 0:
                raise ValueError(f"rarity multiplier for '{rarity_id}' must be positive")

    def with_overrides(self, overrides: Mapping[str, Any]) -> "BalanceConfig":
        """Return a new config layered on top of this one.

        Keys are field names. Rarity multipliers merge per key, either as a
        nested mapping under ``rarity_multipliers`` or as
        ``rarity_multipliers.<rarity>``; feature flags likewise via
        ``features`` or ``features.<flag>``. String values are coerced to
        the type of the field they replace.

        Raises:
            ValueError: on unknown keys or values that cannot be coerced
        """
        changes: dict[str, Any] = {}
        multipliers = dict(self.rarity_multipliers)
        flags = self.features.to_dict()
        scalar_fields = {
            f.name for f in fields(self) if f.name not in ("rarity_multipliers", "features")
        }

        for key, value in overrides.items():
            if key == "rarity_multipliers":
                for rarity_id, mult in dict(value).items():
                    multipliers[_check_rarity(rarity_id)] = _coerce(key, mult, 1.0)
            elif key.startswith("rarity_multipliers."):
                rarity_id = _check_rarity(key.split(".", 1)[1])
                multipliers[rarity_id] = _coerce(key, value, 1.0)
            elif key == "features":
                for flag, enabled in dict(value).items():
                    flags[_check_flag(flag, flags)] = _coerce(flag, enabled, True)
            elif key.startswith("features."):
                flag = _check_flag(key.split(".", 1)[1], flags)
                flags[flag] = _coerce(key, value, True)
            elif key in scalar_fields:
                changes[key] = _coerce(key, value, getattr(self, key))
            else:
                raise ValueError(f"Unknown balance parameter: {key}")

        config = replace(
            self,
            rarity_multipliers=multipliers,
            features=FeatureFlags(**flags),
            **changes,
        )
        config.validate()
        return config

    def to_dict(self) -> dict[str, Any]:
        data = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in ("rarity_multipliers", "features")
        }
        data["rarity_multipliers"] = dict(self.rarity_multipliers)
        data["features"] = self.features.to_dict()
        return data


def _check_rarity(rarity_id: str) -> str:
    if rarity_id not in {r.id for r in CATALOG.rarities}:
        raise ValueError(f"Unknown rarity: {rarity_id}")
    return rarity_id


def _check_flag(flag: str, flags: dict[str, bool]) -> str:
    if flag not in flags:
        raise ValueError(f"Unknown feature flag: {flag}")
    return flag


def _coerce(key: str, value: Any, current: Any) -> Any:
    """Convert an override value to the type of the value it replaces."""
    if isinstance(current, bool):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ("1", "true", "yes", "on"):
                return True
            if lowered in ("0", "false", "no", "off"):
                return False
            raise ValueError(f"Invalid boolean for {key}: {value!r}")
        return bool(value)
    try:
        if isinstance(current, int):
            number = float(value)
            if not number.is_integer():
                raise ValueError(f"{key} expects an integer, got {value}")
            return int(number)
        if isinstance(current, float):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid value for {key}: {value!r}") from e
    return value


def calculate_sell_price(
    rarity_id: str,
    rng: random.Random,
    catalog: Optional[Catalog] = None,
) -> int:
    """Gold received for selling an item, uniform within the rarity's range."""
    catalog = catalog or CATALOG
    low, high = catalog.sell_prices.get(rarity_id, (1, 1))
    return rng.randint(low, high)
