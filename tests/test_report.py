"""
Unit tests for report.py, utils.py and the command-line interface.
"""
import csv
import json

import pytest
from rich.console import Console

from battle_economy import cli
from battle_economy.balance import BalanceConfig
from battle_economy.metrics import TesterConfig
from battle_economy.report import (
    chapter_table,
    comparison_table,
    monte_carlo_table,
    stage_table,
    summary_json,
    summary_table,
    write_csv,
)
from battle_economy.tester import EconomyTester, run_monte_carlo
from battle_economy.utils import format_multiplier, format_number, format_percent, format_stage

EASY = BalanceConfig(base_power_per_level=1000.0)


@pytest.fixture(scope="module")
def summary():
    return EconomyTester(EASY, TesterConfig(max_chapters=1, max_iterations=5000), seed=11).run()


def render(renderable) -> str:
    console = Console(width=200, record=True)
    console.print(renderable)
    return console.export_text()


class TestFormatting:
    """Tests for the formatting helpers."""

    def test_format_number(self):
        """Large numbers get K/M/B suffixes."""
        assert format_number(999) == "999"
        assert format_number(1500) == "1.5K"
        assert format_number(2_500_000) == "2.5M"
        assert format_number(3_000_000_000) == "3.0B"
        assert format_number(12.4) == "12.4"

    def test_format_multiplier(self):
        """Multipliers show three decimals."""
        assert format_multiplier(1.23456) == "x1.235"

    def test_format_percent(self):
        """Fractions are shown as signed percentages."""
        assert format_percent(0.05) == "+5.0%"
        assert format_percent(-0.02) == "-2.0%"

    def test_format_stage(self):
        """Stages read chapter-stage."""
        assert format_stage(3, 7) == "3-7"


class TestTables:
    """Tests for the rich tables."""

    def test_summary_table(self, summary):
        """The summary table shows the run's totals."""
        text = render(summary_table(summary))
        assert "Chapters completed" in text
        assert "complete" in text

    def test_chapter_and_stage_tables(self, summary):
        """Chapter and stage tables have one row per record."""
        assert chapter_table(summary).row_count == len(summary.chapters)
        assert stage_table(summary).row_count == len(summary.stages)

    def test_comparison_table(self, summary):
        """The comparison table has one row per preset."""
        table = comparison_table({"a": summary, "b": summary})
        assert table.row_count == 2

    def test_monte_carlo_table(self):
        """The Monte Carlo table lists each metric."""
        stats = run_monte_carlo(EASY, TesterConfig(max_chapters=1, max_iterations=5000), num_runs=2)
        text = render(monte_carlo_table(stats))
        assert "Battles" in text
        assert "2/2 runs" in text


class TestExport:
    """Tests for CSV and JSON export."""

    def test_write_csv(self, summary, tmp_path):
        """CSV export writes one row per chapter and per stage."""
        chapters_path, stages_path = write_csv(summary, tmp_path / "out")
        with chapters_path.open(newline="", encoding="utf-8") as f:
            chapters = list(csv.DictReader(f))
        with stages_path.open(newline="", encoding="utf-8") as f:
            stages = list(csv.DictReader(f))
        assert len(chapters) == len(summary.chapters)
        assert len(stages) == len(summary.stages)
        assert "looted_common" in chapters[0]
        assert "equipped_immortal" in chapters[0]
        assert "rarity_multiplier" in stages[0]

    def test_summary_json(self, summary):
        """JSON export can leave out the stage records."""
        full = json.loads(summary_json(summary))
        short = json.loads(summary_json(summary, include_stages=False))
        assert len(full["stages"]) == len(summary.stages)
        assert "stages" not in short
        assert short["total_battles"] == summary.total_battles


class TestCli:
    """Tests for the battle-economy command."""

    def test_parse_overrides(self):
        """KEY=VALUE pairs become an overrides mapping."""
        assert cli.parse_overrides(["a=1", " b = x "]) == {"a": "1", "b": "x"}

    def test_parse_overrides_rejects_bare_key(self):
        """Pairs without '=' are rejected."""
        with pytest.raises(ValueError):
            cli.parse_overrides(["power_variance"])

    def test_json_run(self, capsys):
        """--json prints the run summary."""
        code = cli.main([
            "--chapters", "1", "--seed", "3", "--max-iterations", "300",
            "--preset", "baseline", "--json",
        ])
        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["preset"] == "baseline"
        assert data["seed"] == 3
        assert "stages" not in data

    def test_monte_carlo_json(self, capsys):
        """--runs prints Monte Carlo statistics."""
        code = cli.main([
            "--chapters", "1", "--runs", "2", "--max-iterations", "300",
            "--set", "base_power_per_level=1000", "--json",
        ])
        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["num_runs"] == 2

    def test_bad_override(self, capsys):
        """Unknown --set keys exit with an error."""
        assert cli.main(["--set", "gold_per_dragon=1"]) == 2
        assert "Unknown balance parameter" in capsys.readouterr().err

    def test_show_tables(self):
        """--show-tables prints the static tables."""
        assert cli.main(["--show-tables"]) == 0

    def test_csv_export(self, tmp_path):
        """--csv writes the metric files."""
        code = cli.main([
            "--chapters", "1", "--seed", "1", "--max-iterations", "300",
            "--set", "base_power_per_level=1000", "--csv", str(tmp_path),
        ])
        assert code == 0
        assert (tmp_path / "chapters.csv").exists()
        assert (tmp_path / "stages.csv").exists()
