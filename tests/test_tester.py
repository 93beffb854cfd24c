"""
Unit tests for tester.py - the headless economy tester and Monte Carlo runs.
"""
import pytest

from battle_economy.balance import BalanceConfig
from battle_economy.metrics import TesterConfig
from battle_economy.models import Rarity
from battle_economy.tester import EconomyTester, _stats, compare_presets, run_monte_carlo

# Items strong enough that one loot after a defeat clears the stage
EASY = BalanceConfig(base_power_per_level=1000.0)


def one_chapter(max_iterations=5000):
    return TesterConfig(max_chapters=1, max_iterations=max_iterations)


class TestEconomyTester:
    """Tests for a single tester run."""

    def test_deterministic_with_seed(self):
        """The same seed gives the same battle count and metrics."""
        a = EconomyTester(tester_config=one_chapter(), seed=42).run()
        b = EconomyTester(tester_config=one_chapter(), seed=42).run()
        assert a.total_battles == b.total_battles
        assert a.to_dict() == b.to_dict()

    def test_iteration_cap(self):
        """A tiny iteration cap stops the run with partial results."""
        summary = EconomyTester(tester_config=TesterConfig(max_chapters=10, max_iterations=5), seed=1).run()
        assert summary.hit_iteration_cap
        assert summary.total_chapters < 10
        assert summary.iterations > 5

    def test_iteration_cap_logs_warning(self, caplog):
        """Hitting the cap logs a warning instead of raising."""
        with caplog.at_level("WARNING", logger="battle_economy.tester"):
            EconomyTester(tester_config=TesterConfig(max_chapters=10, max_iterations=3), seed=1).run()
        assert any("max iterations" in r.getMessage() for r in caplog.records)

    def test_chapter_recorded(self):
        """Clearing a chapter records chapter and stage metrics."""
        summary = EconomyTester(EASY, one_chapter(), seed=5).run()
        assert not summary.hit_iteration_cap
        assert summary.total_chapters == 1
        assert summary.chapters[0].chapter == 1
        assert (summary.final_chapter, summary.final_stage) == (2, 1)
        assert [s.stage for s in summary.stages] == list(range(1, 11))

    def test_stage_count_matches_victories(self):
        """One stage record per victory."""
        summary = EconomyTester(EASY, one_chapter(), seed=6).run()
        assert len(summary.stages) == summary.total_battles - summary.total_defeats

    def test_chapter_loot_breakdown(self):
        """Looted rarities add up to the chapter's loot count."""
        summary = EconomyTester(EASY, one_chapter(), seed=7).run()
        chapter = summary.chapters[0]
        assert sum(chapter.loots_by_rarity.values()) == chapter.loots
        assert set(chapter.loots_by_rarity) <= {r.value for r in Rarity}

    def test_stage_metrics_fields(self):
        """Stage records carry hero, enemy and lamp state."""
        summary = EconomyTester(EASY, one_chapter(), seed=8).run()
        first = summary.stages[0]
        assert (first.chapter, first.stage) == (1, 1)
        assert first.hero_power > 0
        assert first.enemy_power > 0
        assert first.guaranteed_upgrade_interval == 4
        assert first.guaranteed_rarity in {r.value for r in Rarity}

    def test_no_loot_before_first_defeat(self):
        """Stages cleared without a defeat record no loot; lost stages record some."""
        # A 50x boss guarantees at least one defeat in the chapter
        summary = EconomyTester(BalanceConfig(boss_power_multiplier=50.0), one_chapter(2000), seed=9).run()
        assert summary.total_defeats > 0
        first_defeat = next(
            (i for i, s in enumerate(summary.stages) if s.defeats > 0), len(summary.stages)
        )
        assert first_defeat > 0
        assert all(s.loots == 0 for s in summary.stages[:first_defeat])
        assert all(s.loots >= 1 for s in summary.stages if s.defeats > 0)

    def test_equipped_loot_counts_as_iteration(self):
        """Every loot counts toward the iteration cap, equipped or sold."""
        tester = EconomyTester(tester_config=one_chapter(), seed=2)
        tester.last_battle_lost = True
        tester.loot_phase()
        assert tester.total_loots == 1
        assert tester.iterations == 1

    def test_gold_accounting(self):
        """Gold spent never exceeds gold earned."""
        summary = EconomyTester(tester_config=one_chapter(), seed=3).run()
        assert summary.total_gold_spent <= summary.total_gold_earned

    def test_invalid_tester_config(self):
        """A non-positive chapter ceiling is rejected."""
        with pytest.raises(ValueError):
            EconomyTester(tester_config=TesterConfig(max_chapters=0))


class TestMonteCarlo:
    """Tests for run_monte_carlo() and its statistics."""

    def test_stats_percentiles(self):
        """Percentiles are ordered and worst is the maximum."""
        stats = _stats(list(range(1, 101)))
        assert stats["average"] == pytest.approx(50.5)
        assert stats["p50"] <= stats["p90"] <= stats["p99"] <= stats["worst"] == 100

    def test_run(self):
        """Monte Carlo runs aggregate several seeds."""
        stats = run_monte_carlo(EASY, one_chapter(), num_runs=3, base_seed=10, preset="easy")
        assert stats["num_runs"] == 3
        assert stats["preset"] == "easy"
        assert stats["completed_runs"] == 3
        assert stats["capped_runs"] == 0
        battles = stats["battles"]
        assert battles["p50"] <= battles["worst"]

    def test_needs_runs(self):
        """At least one run is required."""
        with pytest.raises(ValueError):
            run_monte_carlo(num_runs=0)


class TestComparePresets:
    """Tests for compare_presets()."""

    def test_selected_presets(self):
        """Each requested preset runs with the same seed."""
        results = compare_presets(one_chapter(500), seed=4, preset_ids=["baseline", "full"])
        assert list(results) == ["baseline", "full"]
        assert results["baseline"].preset == "baseline"
        assert results["full"].seed == 4

    def test_baseline_loot_is_common(self):
        """The baseline preset never loots above common."""
        results = compare_presets(one_chapter(500), seed=4, base=EASY, preset_ids=["baseline"])
        for chapter in results["baseline"].chapters:
            assert set(chapter.loots_by_rarity) <= {"common"}

    def test_unknown_preset(self):
        """Unknown preset ids are rejected."""
        with pytest.raises(ValueError, match="Unknown preset"):
            compare_presets(one_chapter(), preset_ids=["nope"])
