"""Rendering of tester results: rich tables, CSV and JSON."""

import csv
import json
from dataclasses import asdict, fields
from pathlib import Path
from typing import Mapping, Union

from rich.table import Table
from rich.text import Text

from .metrics import ChapterMetrics, StageMetrics, TestSummary
from .models import Rarity
from .utils import format_multiplier, format_number, format_percent, format_stage


def summary_table(summary: TestSummary) -> Table:
    """Aggregate totals of one run."""
    table = Table(title=f"Economy test: {summary.preset} (seed {summary.seed})", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    status = Text("iteration cap hit", style="bold red") if summary.hit_iteration_cap else Text("complete", style="green")
    table.add_row("Status", status)
    table.add_row("Chapters completed", str(summary.total_chapters))
    table.add_row("Reached", format_stage(summary.final_chapter, summary.final_stage))
    table.add_row("Battles", format_number(summary.total_battles))
    table.add_row("Defeats", format_number(summary.total_defeats))
    table.add_row("Unfair defeats", format_number(summary.total_unfair_defeats))
    table.add_row("Loots", format_number(summary.total_loots))
    table.add_row("Gold earned", format_number(summary.total_gold_earned))
    table.add_row("Gold spent", format_number(summary.total_gold_spent))
    table.add_row("Final hero level", str(summary.final_hero_level))
    table.add_row("Final hero power", format_number(summary.final_hero_power))
    table.add_row("Final lamp level", str(summary.final_lamp_level))
    table.add_row("Iterations", format_number(summary.iterations))
    return table


def chapter_table(summary: TestSummary) -> Table:
    table = Table(title="Chapters")
    for header in ("Ch", "Loots", "Battles", "Defeats", "Unfair", "Hero Lvl",
                   "Hero Power", "Boss Power", "Lamp", "Gold +", "Gold -"):
        table.add_column(header, justify="right")

    for c in summary.chapters:
        defeats = Text(str(c.defeats), style="red" if c.defeats > c.battles // 2 else "")
        table.add_row(
            str(c.chapter),
            str(c.loots),
            str(c.battles),
            defeats,
            str(c.unfair_defeats),
            str(c.hero_level),
            format_number(c.hero_power),
            format_number(c.max_enemy_power),
            str(c.lamp_level),
            format_number(c.gold_earned),
            format_number(c.gold_spent),
        )
    return table


def stage_table(summary: TestSummary) -> Table:
    table = Table(title="Stages")
    for header in ("Stage", "Loots", "Battles", "Def", "Lvl", "Hero Power", "Enemy Power",
                   "Slots", "Target", "Current", "Difficulty", "Lamp", "Gold", "GU every", "Guaranteed"):
        table.add_column(header, justify="right")

    for s in summary.stages:
        rarity = Rarity(s.guaranteed_rarity)
        guaranteed = Text(f"{rarity.display_name} /{s.guaranteed_rarity_interval}", style=rarity.color)
        table.add_row(
            format_stage(s.chapter, s.stage),
            str(s.loots),
            str(s.battles),
            str(s.defeats),
            str(s.hero_level),
            format_number(s.hero_power),
            format_number(s.enemy_power),
            str(s.filled_slots),
            format_multiplier(s.target_rarity_multiplier),
            format_multiplier(s.rarity_multiplier),
            format_percent(s.difficulty_modifier),
            str(s.lamp_level),
            format_number(s.gold),
            str(s.guaranteed_upgrade_interval),
            guaranteed,
        )
    return table


def comparison_table(results: Mapping[str, TestSummary]) -> Table:
    """One row per preset, same seed."""
    table = Table(title="Preset comparison")
    table.add_column("Preset", style="bold")
    for header in ("Chapters", "Reached", "Battles", "Defeats", "Loots", "Hero Power", "Lamp", "Capped"):
        table.add_column(header, justify="right")

    for preset_id, s in results.items():
        table.add_row(
            preset_id,
            str(s.total_chapters),
            format_stage(s.final_chapter, s.final_stage),
            format_number(s.total_battles),
            format_number(s.total_defeats),
            format_number(s.total_loots),
            format_number(s.final_hero_power),
            str(s.final_lamp_level),
            "yes" if s.hit_iteration_cap else "",
        )
    return table


def monte_carlo_table(stats: dict) -> Table:
    table = Table(title=f"Monte Carlo: {stats['preset']} x{stats['num_runs']} runs")
    table.add_column("Metric", style="bold")
    for header in ("Average", "P50", "P90", "P99", "Worst"):
        table.add_column(header, justify="right")

    for key in ("battles", "defeats", "loots", "gold_earned", "final_hero_power", "final_lamp_level"):
        row = stats[key]
        table.add_row(
            key.replace("_", " ").capitalize(),
            *(format_number(row[p]) for p in ("average", "p50", "p90", "p99", "worst")),
        )
    table.caption = (
        f"{stats['completed_runs']}/{stats['num_runs']} runs reached chapter "
        f"{stats['max_chapters']}, {stats['capped_runs']} hit the iteration cap"
    )
    return table


def _flatten_rarities(prefix: str, counts: dict[str, int]) -> dict[str, int]:
    return {f"{prefix}_{r.value}": counts.get(r.value, 0) for r in Rarity}


def _chapter_row(c: ChapterMetrics) -> dict:
    row = {k: v for k, v in asdict(c).items() if k not in ("loots_by_rarity", "equipped_by_rarity")}
    row.update(_flatten_rarities("looted", c.loots_by_rarity))
    row.update(_flatten_rarities("equipped", c.equipped_by_rarity))
    return row


def write_csv(summary: TestSummary, directory: Union[str, Path]) -> tuple[Path, Path]:
    """Write chapters.csv and stages.csv into `directory`. Returns both paths."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    chapters_path = directory / "chapters.csv"
    stages_path = directory / "stages.csv"

    chapter_rows = [_chapter_row(c) for c in summary.chapters]
    chapter_fields = [f.name for f in fields(ChapterMetrics)
                      if f.name not in ("loots_by_rarity", "equipped_by_rarity")]
    chapter_fields += [f"looted_{r.value}" for r in Rarity] + [f"equipped_{r.value}" for r in Rarity]
    with chapters_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=chapter_fields)
        writer.writeheader()
        writer.writerows(chapter_rows)

    with stages_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=[fld.name for fld in fields(StageMetrics)])
        writer.writeheader()
        writer.writerows(asdict(s) for s in summary.stages)

    return chapters_path, stages_path


def summary_json(summary: TestSummary, include_stages: bool = True) -> str:
    data = summary.to_dict()
    if not include_stages:
        data.pop("stages")
    return json.dumps(data, indent=2)
