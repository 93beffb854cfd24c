"""Chapter/stage progression and adaptive difficulty."""

from typing import Optional

from . import config
from .balance import BalanceConfig
from .catalog import CATALOG, Catalog
from .models import DungeonProgress


def is_boss_stage(stage: int) -> bool:
    return stage == config.STAGES_PER_CHAPTER


def global_stage(chapter: int, stage: int) -> int:
    return (chapter - 1) * config.STAGES_PER_CHAPTER + stage


class DungeonProgression:
    """Stage state machine plus stage table lookups."""

    def __init__(self, config: BalanceConfig, catalog: Optional[Catalog] = None):
        self.config = config
        self.catalog = catalog or CATALOG

    def create_progress(self) -> DungeonProgress:
        progress = DungeonProgress()
        progress.current_enemy_power = self.get_base_stage_power(1, 1)
        return progress

    def get_base_stage_power(self, chapter: int, stage: int) -> int:
        return self.catalog.stage_row(global_stage(chapter, stage)).enemy_power

    def get_stage_xp_reward(self, chapter: int, stage: int) -> int:
        return self.catalog.stage_row(global_stage(chapter, stage)).xp_reward

    def advance(self, progress: DungeonProgress) -> DungeonProgress:
        """Move to the next stage, wrapping into the next chapter after the boss."""
        if progress.stage >= config.STAGES_PER_CHAPTER:
            progress.chapter += 1
            progress.stage = 1
        else:
            progress.stage += 1
        progress.current_enemy_power = self.get_base_stage_power(progress.chapter, progress.stage)
        return progress

    def get_adjusted_enemy_power(self, progress: DungeonProgress, rarity_multiplier: float) -> int:
        """Enemy power after rarity, difficulty and boss scaling."""
        power = progress.current_enemy_power * rarity_multiplier * (1 + progress.difficulty_modifier)
        if is_boss_stage(progress.stage):
            power *= self.config.boss_power_multiplier
        return round(power)

    def adjust_difficulty_on_victory(self, progress: DungeonProgress) -> None:
        if self.config.difficulty_enabled:
            progress.difficulty_modifier += self.config.difficulty_on_victory

    def adjust_difficulty_on_defeat(self, progress: DungeonProgress) -> bool:
        """Apply the defeat penalty once per stage. Returns True if applied."""
        if not self.config.difficulty_enabled:
            return False
        if progress.last_defeat_stage == progress.stage_id:
            return False
        progress.difficulty_modifier += self.config.difficulty_on_defeat
        progress.last_defeat_stage = progress.stage_id
        return True
