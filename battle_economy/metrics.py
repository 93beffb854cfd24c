"""Metric records produced by the economy tester."""
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

DEFAULT_MAX_ITERATIONS = 50_000   # safety cap on loop + loot iterations


@dataclass(slots=True)
class TesterConfig:
    """Run limits for the economy tester."""
    max_chapters: int = 10
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    verbose: bool = False

    __test__ = False

    def validate(self) -> None:
        if self.max_chapters < 1:
            raise ValueError("max_chapters must be >= 1")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be >= 1")


@dataclass(slots=True)
class StageMetrics:
    """Snapshot taken when a stage is cleared."""
    chapter: int
    stage: int
    loots: int
    battles: int
    defeats: int
    hero_level: int
    hero_power: int
    hero_hp: int
    hero_damage: int
    filled_slots: int
    enemy_power: int
    target_rarity_multiplier: float
    rarity_multiplier: float
    difficulty_modifier: float
    lamp_level: int
    gold: int
    guaranteed_upgrade_interval: int
    guaranteed_rarity: str
    guaranteed_rarity_interval: int


@dataclass(slots=True)
class ChapterMetrics:
    """Totals for one completed chapter."""
    chapter: int
    loots: int
    battles: int
    defeats: int
    unfair_defeats: int        # defeats where hero power exceeded enemy power
    lamp_level: int
    hero_power: int
    hero_level: int
    gold_earned: int
    gold_spent: int
    max_enemy_power: int
    loots_by_rarity: dict[str, int] = field(default_factory=dict)
    equipped_by_rarity: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class TestSummary:
    """Everything a tester run produced.

    Totals count the whole run, including an unfinished last chapter.
    """
    preset: str
    seed: Optional[int]
    total_chapters: int
    total_loots: int
    total_battles: int
    total_defeats: int
    total_unfair_defeats: int
    total_gold_earned: int
    total_gold_spent: int
    final_lamp_level: int
    final_hero_power: int
    final_hero_level: int
    final_chapter: int
    final_stage: int
    iterations: int
    hit_iteration_cap: bool
    chapters: list[ChapterMetrics] = field(default_factory=list)
    stages: list[StageMetrics] = field(default_factory=list)

    # Keeps pytest from collecting this class
    __test__ = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
