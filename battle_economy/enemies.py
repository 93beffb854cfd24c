"""Enemy wave generation from a target power budget."""

import math
import random
from dataclasses import dataclass
from typing import Optional

from .config import BOSS_NAMES, DAMAGE_POWER_WEIGHT, ENEMY_NAMES
from .balance import BalanceConfig
from .models import effective_power

# Per-enemy damage share of the target power in multi-enemy waves
WAVE_DAMAGE_SHARE: dict[int, float] = {2: 0.083, 3: 0.0625}

# Share of the target power that becomes party HP in multi-enemy waves
WAVE_HP_SHARE: float = 0.5


@dataclass(frozen=True, slots=True)
class Enemy:
    id: str
    name: str
    hp: int
    max_hp: int
    damage: int
    is_boss: bool = False

    @property
    def power(self) -> int:
        return effective_power(self.max_hp, self.damage)


class EnemyWaveGenerator:
    """Builds 1-3 enemies whose combined strength matches a power budget."""

    def __init__(self, config: BalanceConfig, rng: random.Random):
        self.config = config
        self.rng = rng

    def _name(self, is_boss: bool) -> str:
        return self.rng.choice(BOSS_NAMES if is_boss else ENEMY_NAMES)

    def _enemy_id(self) -> str:
        return f"enemy_{self.rng.getrandbits(32):08x}"

    def generate_enemy(self, power: float, is_boss: bool = False) -> Enemy:
        """Single enemy with the configured hp:damage ratio k.

        damage = power / (4 + k), hp = damage * k, so hp + 4*damage ~= power.
        """
        k = self.config.hp_to_damage_ratio
        damage = max(1, math.floor(math.floor(power) / (DAMAGE_POWER_WEIGHT + k)))
        hp = math.floor(damage * k)
        return Enemy(
            id=self._enemy_id(),
            name=self._name(is_boss),
            hp=hp,
            max_hp=hp,
            damage=damage,
            is_boss=is_boss,
        )

    def generate_wave(
        self,
        target_power: float,
        min_count: Optional[int] = None,
        max_count: Optional[int] = None,
        is_boss: bool = False,
    ) -> list[Enemy]:
        """Enemies for one battle.

        Bosses always come alone. Multi-enemy waves split party HP evenly
        but every member keeps a fixed share of the target as damage.
        """
        if is_boss:
            return [self.generate_enemy(target_power, is_boss=True)]

        min_count = self.config.min_enemies if min_count is None else min_count
        max_count = self.config.max_enemies if max_count is None else max_count
        count = self.rng.randint(min_count, max_count)
        if count <= 1:
            return [self.generate_enemy(target_power)]

        damage_share = WAVE_DAMAGE_SHARE.get(count, WAVE_DAMAGE_SHARE[3])
        hp = max(1, math.floor(target_power * WAVE_HP_SHARE / count))
        damage = max(1, math.floor(target_power * damage_share))
        return [
            Enemy(
                id=self._enemy_id(),
                name=self._name(False),
                hp=hp,
                max_hp=hp,
                damage=damage,
            )
            for _ in range(count)
        ]
