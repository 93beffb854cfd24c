"""Headless economy tester with Monte Carlo support.

Runs the loot -> lamp upgrade -> battle cycle with the same models as the
live game until a chapter ceiling or the iteration safety cap, recording
per-stage and per-chapter metrics.
"""

import logging
import random
from collections import Counter
from typing import Optional

from . import config
from . import presets  # noqa: F401  registers presets
from .balance import BalanceConfig, calculate_sell_price
from .battle import enemy_units, hero_unit, run_full_battle, summarize
from .catalog import CATALOG, Catalog
from .core import PresetRegistry
from .dungeon import DungeonProgression, is_boss_stage
from .enemies import EnemyWaveGenerator
from .items import ItemGenerator
from .lamp import LampModel
from .loot import LootPipeline
from .metrics import ChapterMetrics, StageMetrics, TestSummary, TesterConfig
from .models import GameState, Hero

logger = logging.getLogger(__name__)


class EconomyTester:
    """Simulates a player pushing through the dungeon.

    Loot phase runs only after a defeat and stops at the first upgrade (or
    after LOOTS_PER_PHASE_CAP loots). Gold goes greedily into lamp levels.
    Each cycle ends with one battle attempt.
    """

    def __init__(
        self,
        balance: Optional[BalanceConfig] = None,
        tester_config: Optional[TesterConfig] = None,
        seed: Optional[int] = None,
        preset: str = "custom",
        catalog: Optional[Catalog] = None,
    ):
        self.balance = balance or BalanceConfig()
        self.tester_config = tester_config or TesterConfig()
        self.balance.validate()
        self.tester_config.validate()
        self.seed = seed
        self.preset = preset
        self.catalog = catalog or CATALOG
        self.rng = random.Random(seed)

        self.items = ItemGenerator(self.balance, self.rng, self.catalog)
        self.lamp_model = LampModel(self.balance, self.rng, self.catalog)
        self.dungeon = DungeonProgression(self.balance, self.catalog)
        self.waves = EnemyWaveGenerator(self.balance, self.rng)
        self.loot = LootPipeline(self.balance, self.items, self.lamp_model)

        self.reset()

    def reset(self) -> None:
        """Reset run state to a fresh hero."""
        hero = Hero()
        hero.recalculate()
        hero.heal()
        self.state = GameState(
            hero=hero,
            lamp=self.lamp_model.create_lamp(),
            dungeon=self.dungeon.create_progress(),
        )

        self.chapters: list[ChapterMetrics] = []
        self.stages: list[StageMetrics] = []

        self.iterations = 0
        self.last_battle_lost = False
        self.hit_iteration_cap = False

        self._reset_chapter_counters()
        self._reset_stage_counters()

        self.total_loots = 0
        self.total_battles = 0
        self.total_defeats = 0
        self.total_unfair_defeats = 0
        self.total_gold_earned = 0
        self.total_gold_spent = 0

    def _reset_chapter_counters(self) -> None:
        self.chapter_loots = 0
        self.chapter_battles = 0
        self.chapter_defeats = 0
        self.chapter_unfair_defeats = 0
        self.chapter_gold_earned = 0
        self.chapter_gold_spent = 0
        self.chapter_loots_by_rarity: Counter[str] = Counter()

    def _reset_stage_counters(self) -> None:
        self.stage_loots = 0
        self.stage_battles = 0
        self.stage_defeats = 0

    def _over_cap(self) -> bool:
        return self.iterations > self.tester_config.max_iterations

    # ------------------------------------------------------------------
    # Main loop

    def run(self) -> TestSummary:
        cfg = self.tester_config
        dungeon = self.state.dungeon
        logger.info(
            "Economy test started: preset=%s seed=%s max_chapters=%d",
            self.preset, self.seed, cfg.max_chapters,
        )

        while dungeon.chapter <= cfg.max_chapters:
            self.iterations += 1
            if self._over_cap():
                self._warn_iteration_cap()
                break

            chapter_before = dungeon.chapter

            self.loot_phase()
            self.upgrade_phase()
            victory = self.battle_phase()

            if victory and dungeon.chapter > chapter_before:
                self._record_chapter(chapter_before)
                log = logger.info if cfg.verbose else logger.debug
                log("Chapter %d completed (iterations=%d)", chapter_before, self.iterations)

        summary = self.build_summary()
        logger.info(
            "Economy test finished: chapters=%d battles=%d defeats=%d loots=%d",
            summary.total_chapters, summary.total_battles,
            summary.total_defeats, summary.total_loots,
        )
        return summary

    def _warn_iteration_cap(self) -> None:
        state = self.state
        self.hit_iteration_cap = True
        logger.warning(
            "Reached max iterations (%d), stopping at chapter %d stage %d",
            self.tester_config.max_iterations, state.dungeon.chapter, state.dungeon.stage,
        )
        logger.warning(
            "Hero: level %d, power %d, gold %d | enemy power %d | lamp level %d",
            state.hero.level, state.hero.power, state.hero.gold,
            self._enemy_power(), state.lamp.level,
        )

    # ------------------------------------------------------------------
    # Phases

    def loot_phase(self) -> None:
        """Loot until an upgrade is equipped, only after a defeat."""
        if not self.last_battle_lost:
            return
        self.last_battle_lost = False
        for _ in range(config.LOOTS_PER_PHASE_CAP):
            upgraded = self.loot_one()
            if self._over_cap() or upgraded:
                break

    def loot_one(self) -> bool:
        """Roll one loot; equip it if it is an upgrade, else sell it."""
        state = self.state
        hero = state.hero
        result = self.loot.roll(hero, state.lamp, state.dungeon, state.loot_counters)
        item = result.item

        self.stage_loots += 1
        self.chapter_loots += 1
        self.total_loots += 1
        self.chapter_loots_by_rarity[item.rarity.value] += 1
        self.iterations += 1

        if self.loot.is_upgrade(hero, result):
            hero.equip(item)
            return True

        price = calculate_sell_price(item.rarity.value, self.rng, self.catalog)
        hero.gold += price
        self._earn(price)
        return False

    def upgrade_phase(self) -> None:
        """Spend gold on lamp levels while affordable."""
        state = self.state
        while True:
            cost = self.lamp_model.upgrade_cost(state.lamp.level)
            if cost is None or state.hero.gold < cost:
                break
            state.hero.gold -= cost
            self.lamp_model.level_up(state.lamp)
            self.chapter_gold_spent += cost
            self.total_gold_spent += cost

    def _enemy_power(self) -> int:
        state = self.state
        return self.dungeon.get_adjusted_enemy_power(
            state.dungeon, state.lamp.current_rarity_multiplier
        )

    def _total_slots(self) -> int:
        return len(self.catalog.unlocked_slots(self.state.dungeon.global_stage))

    def battle_phase(self) -> bool:
        """One battle attempt at the current stage. Returns True on victory."""
        state = self.state
        hero = state.hero
        dungeon = state.dungeon

        hero.heal()
        enemy_power = self._enemy_power()
        enemies = self.waves.generate_wave(enemy_power, is_boss=is_boss_stage(dungeon.stage))
        battle = run_full_battle(hero_unit(hero), enemy_units(enemies))
        result = summarize(battle, hero.hp, self.balance.gold_per_enemy)

        self.stage_battles += 1
        self.chapter_battles += 1
        self.total_battles += 1
        hero.hp = max(0, hero.hp - result.hero_damage_taken)

        if result.victory:
            self._record_stage(enemy_power)
            self._reset_stage_counters()

            gold = result.gold_reward + self.balance.gold_per_stage_clear
            hero.gold += gold
            self._earn(gold)
            hero.add_xp(self.dungeon.get_stage_xp_reward(dungeon.chapter, dungeon.stage), self.catalog)

            self.dungeon.adjust_difficulty_on_victory(dungeon)
            self.lamp_model.update_rarity_multiplier_after_kill(
                state.lamp, self._total_slots(), dungeon.chapter
            )
            self.dungeon.advance(dungeon)
            hero.heal()
            return True

        self.stage_defeats += 1
        self.chapter_defeats += 1
        self.total_defeats += 1
        if hero.power > enemy_power:
            self.chapter_unfair_defeats += 1
            self.total_unfair_defeats += 1
        self.dungeon.adjust_difficulty_on_defeat(dungeon)
        self.last_battle_lost = True
        hero.heal()
        return False

    def _earn(self, gold: int) -> None:
        self.chapter_gold_earned += gold
        self.total_gold_earned += gold

    # ------------------------------------------------------------------
    # Metrics

    def _record_stage(self, enemy_power: int) -> None:
        state = self.state
        hero = state.hero
        dungeon = state.dungeon
        total_slots = self._total_slots()
        guaranteed, rarity_interval = self.loot.guaranteed_rarity(state.lamp, dungeon)
        self.stages.append(StageMetrics(
            chapter=dungeon.chapter,
            stage=dungeon.stage,
            loots=self.stage_loots,
            battles=self.stage_battles,
            defeats=self.stage_defeats,
            hero_level=hero.level,
            hero_power=hero.power,
            hero_hp=hero.max_hp,
            hero_damage=hero.damage,
            filled_slots=hero.filled_slots,
            enemy_power=enemy_power,
            target_rarity_multiplier=self.lamp_model.target_multiplier(
                state.lamp.level, total_slots, dungeon.chapter
            ),
            rarity_multiplier=state.lamp.current_rarity_multiplier,
            difficulty_modifier=dungeon.difficulty_modifier,
            lamp_level=state.lamp.level,
            gold=hero.gold,
            guaranteed_upgrade_interval=self.loot.guaranteed_upgrade_interval(dungeon.global_stage),
            guaranteed_rarity=guaranteed.value,
            guaranteed_rarity_interval=rarity_interval,
        ))

    def _record_chapter(self, chapter: int) -> None:
        state = self.state
        hero = state.hero
        boss_power = round(
            self.dungeon.get_base_stage_power(chapter, config.STAGES_PER_CHAPTER)
            * state.lamp.current_rarity_multiplier
            * self.balance.boss_power_multiplier
        )
        equipped = Counter(
            item.rarity.value for item in hero.equipment.values() if item is not None
        )
        self.chapters.append(ChapterMetrics(
            chapter=chapter,
            loots=self.chapter_loots,
            battles=self.chapter_battles,
            defeats=self.chapter_defeats,
            unfair_defeats=self.chapter_unfair_defeats,
            lamp_level=state.lamp.level,
            hero_power=hero.power,
            hero_level=hero.level,
            gold_earned=self.chapter_gold_earned,
            gold_spent=self.chapter_gold_spent,
            max_enemy_power=boss_power,
            loots_by_rarity=dict(self.chapter_loots_by_rarity),
            equipped_by_rarity=dict(equipped),
        ))
        self._reset_chapter_counters()

    def build_summary(self) -> TestSummary:
        state = self.state
        return TestSummary(
            preset=self.preset,
            seed=self.seed,
            total_chapters=len(self.chapters),
            total_loots=self.total_loots,
            total_battles=self.total_battles,
            total_defeats=self.total_defeats,
            total_unfair_defeats=self.total_unfair_defeats,
            total_gold_earned=self.total_gold_earned,
            total_gold_spent=self.total_gold_spent,
            final_lamp_level=state.lamp.level,
            final_hero_power=state.hero.power,
            final_hero_level=state.hero.level,
            final_chapter=state.dungeon.chapter,
            final_stage=state.dungeon.stage,
            iterations=self.iterations,
            hit_iteration_cap=self.hit_iteration_cap,
            chapters=list(self.chapters),
            stages=list(self.stages),
        )


def _percentile(data: list, p: float) -> float:
    idx = int(len(data) * p)
    return data[min(idx, len(data) - 1)]


def _average(data: list) -> float:
    return sum(data) / len(data) if data else 0


def _stats(values: list) -> dict:
    data = sorted(values)
    return {
        "average": _average(data),
        "p50": _percentile(data, 0.50),
        "p90": _percentile(data, 0.90),
        "p99": _percentile(data, 0.99),
        "worst": data[-1],
    }


def run_monte_carlo(
    balance: Optional[BalanceConfig] = None,
    tester_config: Optional[TesterConfig] = None,
    num_runs: int = 100,
    base_seed: int = 0,
    preset: str = "custom",
) -> dict:
    """Run the tester over consecutive seeds and return statistics."""
    if num_runs < 1:
        raise ValueError("num_runs must be >= 1")
    tester_config = tester_config or TesterConfig()
    summaries = [
        EconomyTester(balance, tester_config, seed=base_seed + i, preset=preset).run()
        for i in range(num_runs)
    ]
    return aggregate_runs(summaries, tester_config.max_chapters, base_seed, preset)


def aggregate_runs(
    summaries: list[TestSummary],
    max_chapters: int,
    base_seed: int = 0,
    preset: str = "custom",
) -> dict:
    """Percentile statistics over finished runs."""
    if not summaries:
        raise ValueError("no runs to aggregate")
    return {
        "num_runs": len(summaries),
        "base_seed": base_seed,
        "preset": preset,
        "max_chapters": max_chapters,
        "completed_runs": sum(
            1 for s in summaries if s.total_chapters >= max_chapters
        ),
        "capped_runs": sum(1 for s in summaries if s.hit_iteration_cap),
        "battles": _stats([s.total_battles for s in summaries]),
        "defeats": _stats([s.total_defeats for s in summaries]),
        "loots": _stats([s.total_loots for s in summaries]),
        "gold_earned": _stats([s.total_gold_earned for s in summaries]),
        "final_hero_power": _stats([s.final_hero_power for s in summaries]),
        "final_lamp_level": _stats([s.final_lamp_level for s in summaries]),
    }


def compare_presets(
    tester_config: Optional[TesterConfig] = None,
    seed: int = 0,
    base: Optional[BalanceConfig] = None,
    overrides: Optional[dict] = None,
    preset_ids: Optional[list[str]] = None,
) -> dict[str, TestSummary]:
    """Run every preset with the same seed.

    Raises:
        ValueError: if a preset id is not registered
    """
    results: dict[str, TestSummary] = {}
    for preset_id in preset_ids or PresetRegistry.ids():
        preset = PresetRegistry.get(preset_id)
        if preset is None:
            raise ValueError(f"Unknown preset: {preset_id}")
        balance = preset.build_config(base, overrides)
        results[preset_id] = EconomyTester(balance, tester_config, seed=seed, preset=preset_id).run()
    return results
