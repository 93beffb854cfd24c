"""Command-line interface for the battle economy tester."""
import argparse
import json
import logging
import sys
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import presets  # noqa: F401  registers presets
from .balance import BalanceConfig
from .catalog import CATALOG
from .core import PresetRegistry
from .metrics import DEFAULT_MAX_ITERATIONS, TesterConfig
from .models import Rarity
from .report import (
    chapter_table,
    comparison_table,
    monte_carlo_table,
    stage_table,
    summary_json,
    summary_table,
    write_csv,
)
from .tester import EconomyTester, compare_presets, run_monte_carlo
from .utils import format_number

console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def parse_overrides(pairs: list[str]) -> dict[str, Any]:
    """Turn KEY=VALUE strings into an overrides mapping.

    Raises:
        ValueError: on a pair without '='
    """
    overrides: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        overrides[key.strip()] = value.strip()
    return overrides


def print_tables() -> None:
    """Print the lamp weight table and the slot table."""
    lamp = Table(title="Lamp levels")
    lamp.add_column("Level", justify="right")
    lamp.add_column("Price", justify="right")
    for rarity in Rarity:
        lamp.add_column(rarity.display_name, justify="right", style=rarity.color)
    for row in CATALOG.lamp_levels:
        total = sum(row.weights.values())
        lamp.add_row(
            str(row.level),
            format_number(row.price),
            *(
                f"{row.weights.get(r.value, 0) / total * 100:.0f}%" if row.weights.get(r.value) else ""
                for r in Rarity
            ),
        )
    console.print(lamp)

    slots = Table(title="Slots")
    for header in ("Slot", "Unlock stage", "HP ratio", "Damage ratio"):
        slots.add_column(header, justify="right")
    for info in CATALOG.slots:
        slots.add_row(info.id, str(info.unlock_stage), f"{info.hp_ratio:.2f}", f"{info.damage_ratio:.2f}")
    console.print(slots)


def build_parser() -> argparse.ArgumentParser:
    preset_lines = "\n".join(
        f"  {info.id:<20}{info.description}" for info in PresetRegistry.get_all_info()
    )
    parser = argparse.ArgumentParser(
        prog="battle-economy",
        description="Economy and balance tester for the battle loot game",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s --chapters 5 --seed 42          # One run through chapter 5
  %(prog)s --preset baseline --stages      # Baseline run with per-stage table
  %(prog)s --compare --seed 7              # All presets with the same seed
  %(prog)s --runs 200 --chapters 3         # Monte Carlo over 200 seeds
  %(prog)s --set power_variance=0 --set features.guaranteed_upgrade=false

Presets:
{preset_lines}
        """,
    )
    parser.add_argument("--chapters", "-c", type=int, default=10,
                        help="Chapter to test up to (default: 10)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    parser.add_argument("--preset", "-p", choices=PresetRegistry.ids(), default=presets.DEFAULT_PRESET,
                        help=f"Feature preset (default: {presets.DEFAULT_PRESET})")
    parser.add_argument("--max-iterations", type=int, default=DEFAULT_MAX_ITERATIONS,
                        help="Safety cap on iterations (default: %(default)s)")
    parser.add_argument("--runs", "-n", type=int, default=1,
                        help="Monte Carlo runs over consecutive seeds (default: 1)")
    parser.add_argument("--compare", action="store_true",
                        help="Run every preset with the same seed")
    parser.add_argument("--stages", action="store_true",
                        help="Show the per-stage table")
    parser.add_argument("--csv", metavar="DIR",
                        help="Write chapters.csv and stages.csv into DIR")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON")
    parser.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
                        help="Override a balance parameter (repeatable)")
    parser.add_argument("--show-tables", action="store_true",
                        help="Show lamp and slot tables and exit")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.show_tables:
        print_tables()
        return 0

    try:
        overrides = parse_overrides(args.overrides)
        tester_config = TesterConfig(
            max_chapters=args.chapters,
            max_iterations=args.max_iterations,
            verbose=args.verbose,
        )
        tester_config.validate()
        preset = PresetRegistry.get(args.preset)
        balance = preset.build_config(BalanceConfig(), overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.compare:
        results = compare_presets(
            tester_config,
            seed=args.seed if args.seed is not None else 0,
            overrides=overrides,
        )
        if args.json:
            print(json.dumps({k: v.to_dict() for k, v in results.items()}, indent=2))
        else:
            console.print(comparison_table(results))
        return 0

    if args.runs > 1:
        stats = run_monte_carlo(
            balance,
            tester_config,
            num_runs=args.runs,
            base_seed=args.seed if args.seed is not None else 0,
            preset=args.preset,
        )
        if args.json:
            print(json.dumps(stats, indent=2))
        else:
            console.print(monte_carlo_table(stats))
        return 0

    summary = EconomyTester(balance, tester_config, seed=args.seed, preset=args.preset).run()

    if args.csv:
        chapters_path, stages_path = write_csv(summary, args.csv)
        logging.getLogger(__name__).info("Wrote %s and %s", chapters_path, stages_path)

    if args.json:
        print(summary_json(summary, include_stages=args.stages))
        return 0

    console.print(summary_table(summary))
    console.print(chapter_table(summary))
    if args.stages:
        console.print(stage_table(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
