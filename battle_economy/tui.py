"""TUI for the battle economy using Textual."""
import asyncio
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal, ScrollableContainer, Vertical
from textual.screen import Screen
from textual.widgets import (
    Button,
    Footer,
    Header,
    Input,
    Label,
    RichLog,
    Rule,
    Select,
    Static,
)
from rich.text import Text

from . import presets
from .balance import BalanceConfig
from .battle import BattleResult
from .core import PresetRegistry
from .dungeon import is_boss_stage
from .game_state import GameSession
from .loot import LootKind, LootResult
from .metrics import DEFAULT_MAX_ITERATIONS, TestSummary, TesterConfig
from .models import Item, Slot
from .report import chapter_table, comparison_table, monte_carlo_table, summary_table
from .screens import BalanceEditorScreen
from .storage import SaveStore
from .tester import EconomyTester, aggregate_runs
from .utils import format_multiplier, format_number, format_percent, format_stage

BATTLE_STEP_DELAY = 0.15


def item_text(item: Item) -> Text:
    """One-line colored description of an item."""
    text = Text()
    text.append(f"{item.rarity.display_name} ", style=item.rarity.color)
    text.append(f"{item.slot.value} ", style="bold")
    text.append(f"Lv{item.level}  P{format_number(item.power)} (hp {item.hp}, dmg {item.damage})")
    return text


class SetupScreen(Screen):
    """Starting screen: pick a preset, run tests or play."""

    CSS = """
    SetupScreen {
        layout: vertical;
    }

    #setup-container {
        padding: 1 2;
        height: auto;
    }

    .config-row {
        height: 3;
        margin-bottom: 1;
    }

    .config-label {
        width: 30;
        content-align: left middle;
    }

    .config-select {
        width: 30;
    }

    .config-input-small {
        width: 18;
    }

    #title {
        text-align: center;
        text-style: bold;
        color: $accent;
        padding: 1;
    }

    .section-title {
        text-style: bold;
        color: $primary;
        margin-top: 1;
    }

    .preset-description {
        color: $text-muted;
        margin-left: 2;
    }

    Button {
        width: 100%;
        margin: 1 0 0 0;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("enter", "start", "Run Test"),
        Binding("p", "play", "Play"),
        Binding("b", "balance", "Balance"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()

        with ScrollableContainer(id="setup-container"):
            yield Static("Battle Economy", id="title")
            yield Rule()

            yield Static("Preset", classes="section-title")
            with Horizontal(classes="config-row"):
                yield Label("Feature preset:", classes="config-label")
                yield Select(
                    [(info.name, info.id) for info in PresetRegistry.get_all_info()],
                    value=self.app.preset_id,
                    id="preset",
                    classes="config-select",
                )
            yield Static(self._preset_description(self.app.preset_id),
                         id="preset-description", classes="preset-description")

            yield Rule()

            yield Static("Economy Test", classes="section-title")
            with Horizontal(classes="config-row"):
                yield Label("Test up to chapter:", classes="config-label")
                yield Input(value="10", id="chapters", classes="config-input-small", type="integer")
            with Horizontal(classes="config-row"):
                yield Label("Seed (blank = random):", classes="config-label")
                yield Input(value="", placeholder="random", id="seed", classes="config-input-small", type="integer")
            with Horizontal(classes="config-row"):
                yield Label("Max iterations:", classes="config-label")
                yield Input(value=str(DEFAULT_MAX_ITERATIONS), id="max-iterations",
                            classes="config-input-small", type="integer")
            with Horizontal(classes="config-row"):
                yield Label("Monte Carlo runs:", classes="config-label")
                yield Input(value="100", id="runs", classes="config-input-small", type="integer")

            yield Button("Run Economy Test", id="test-button", variant="success")
            yield Button("Compare Presets", id="compare-button", variant="primary")
            yield Button("Monte Carlo", id="monte-carlo-button", variant="primary")

            yield Rule()

            yield Static("Game", classes="section-title")
            yield Button("Play", id="play-button", variant="success")
            yield Button("Balance Settings", id="balance-button", variant="default")

        yield Footer()

    def on_screen_resume(self) -> None:
        self.query_one("#preset", Select).value = self.app.preset_id

    @staticmethod
    def _preset_description(preset_id: str) -> str:
        preset = PresetRegistry.get(preset_id)
        return preset.get_info().description if preset else ""

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "preset" or event.value is Select.BLANK:
            return
        self.query_one("#preset-description", Static).update(self._preset_description(event.value))
        if event.value == self.app.preset_id:
            return
        preset = PresetRegistry.get(event.value)
        self.app.balance = preset.build_config(self.app.balance)
        self.app.preset_id = event.value

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "test-button":
            self._start("single")
        elif event.button.id == "compare-button":
            self._start("compare")
        elif event.button.id == "monte-carlo-button":
            self._start("monte_carlo")
        elif event.button.id == "play-button":
            self.action_play()
        elif event.button.id == "balance-button":
            self.action_balance()

    def action_start(self) -> None:
        self._start("single")

    def action_play(self) -> None:
        self.app.push_screen(GameScreen())

    def action_balance(self) -> None:
        self.app.push_screen(BalanceEditorScreen())

    def _parse_int(self, input_id: str, default: Optional[int]) -> Optional[int]:
        """Parse an integer input, falling back to `default` when blank or invalid."""
        value = self.query_one(f"#{input_id}", Input).value.strip()
        if not value:
            return default
        try:
            return int(value)
        except ValueError:
            return default

    def _start(self, mode: str) -> None:
        tester_config = TesterConfig(
            max_chapters=max(1, self._parse_int("chapters", 10)),
            max_iterations=max(1, self._parse_int("max-iterations", DEFAULT_MAX_ITERATIONS)),
        )
        self.app.push_screen(
            EconomyTestScreen(
                mode,
                self.app.balance,
                tester_config,
                seed=self._parse_int("seed", None),
                runs=max(1, self._parse_int("runs", 100)),
                preset_id=self.app.preset_id,
            )
        )

    def action_quit(self) -> None:
        self.app.exit()


class EconomyTestScreen(Screen):
    """Runs the economy tester and shows the report."""

    CSS = """
    EconomyTestScreen {
        layout: vertical;
    }

    #test-status {
        height: 1;
        padding: 0 1;
        background: $primary-background;
    }

    #results-container {
        height: 1fr;
        border: solid $primary;
        padding: 0 1;
    }

    #test-controls {
        height: 3;
        padding: 0 1;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "restart", "Restart"),
        Binding("escape", "back", "Back"),
    ]

    def __init__(
        self,
        mode: str,
        balance: BalanceConfig,
        tester_config: TesterConfig,
        seed: Optional[int] = None,
        runs: int = 100,
        preset_id: str = presets.DEFAULT_PRESET,
    ):
        super().__init__()
        self.mode = mode
        self.balance = balance
        self.tester_config = tester_config
        self.seed = seed
        self.runs = runs
        self.preset_id = preset_id
        self.running = False

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("Status: Ready", id="test-status")
        yield RichLog(id="results-container", highlight=True, markup=True)
        with Horizontal(id="test-controls"):
            yield Button("Back", id="back-button", variant="default")
            yield Button("Restart", id="restart-button", variant="warning")
        yield Footer()

    async def on_mount(self) -> None:
        self.run_tests()

    def run_tests(self) -> None:
        """Start the tester as a background task."""
        self.running = True
        asyncio.create_task(self._run_async())

    async def _run_async(self) -> None:
        log = self.query_one("#results-container", RichLog)
        status = self.query_one("#test-status", Static)
        log.write(
            f"[bold]Preset:[/bold] {self.preset_id}   "
            f"[bold]Chapters:[/bold] {self.tester_config.max_chapters}   "
            f"[bold]Seed:[/bold] {self.seed if self.seed is not None else 'random'}"
        )
        await asyncio.sleep(0.01)

        if self.mode == "compare":
            await self._run_compare(log, status)
        elif self.mode == "monte_carlo":
            await self._run_monte_carlo(log, status)
        else:
            status.update("Status: Running...")
            await asyncio.sleep(0.01)
            summary = EconomyTester(self.balance, self.tester_config, self.seed, self.preset_id).run()
            self._write_summary(log, summary)

        if self.running:
            status.update("Status: Complete!")
        self.running = False

    def _write_summary(self, log: RichLog, summary: TestSummary) -> None:
        log.write(summary_table(summary))
        log.write(chapter_table(summary))
        if summary.hit_iteration_cap:
            log.write(Text(
                f"Iteration cap of {self.tester_config.max_iterations} reached; "
                "the economy stalls before the target chapter.",
                style="bold red",
            ))

    async def _run_compare(self, log: RichLog, status: Static) -> None:
        seed = self.seed if self.seed is not None else 0
        results: dict[str, TestSummary] = {}
        for preset_id in PresetRegistry.ids():
            if not self.running:
                return
            status.update(f"Status: Testing {preset_id}...")
            await asyncio.sleep(0.001)
            balance = PresetRegistry.get(preset_id).build_config(self.balance)
            results[preset_id] = EconomyTester(balance, self.tester_config, seed, preset_id).run()
        log.write(comparison_table(results))

    async def _run_monte_carlo(self, log: RichLog, status: Static) -> None:
        base_seed = self.seed if self.seed is not None else 0
        batch_size = max(1, self.runs // 20)  # update every 5%
        summaries: list[TestSummary] = []
        for i in range(self.runs):
            if not self.running:
                return
            summaries.append(
                EconomyTester(self.balance, self.tester_config, base_seed + i, self.preset_id).run()
            )
            if (i + 1) % batch_size == 0 or i == self.runs - 1:
                status.update(f"Status: {int((i + 1) / self.runs * 100)}% ({i + 1}/{self.runs} runs)")
                await asyncio.sleep(0.001)
        log.write(monte_carlo_table(
            aggregate_runs(summaries, self.tester_config.max_chapters, base_seed, self.preset_id)
        ))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "back-button":
            self.action_back()
        elif event.button.id == "restart-button":
            self.action_restart()

    def action_back(self) -> None:
        self.running = False
        self.app.pop_screen()

    def action_restart(self) -> None:
        if self.running:
            self.notify("Test still running", severity="warning")
            return
        self.query_one("#results-container", RichLog).clear()
        self.run_tests()

    def action_quit(self) -> None:
        self.running = False
        self.app.exit()


class GameScreen(Screen):
    """Playable game backed by a saved GameSession."""

    CSS = """
    GameScreen {
        layout: vertical;
    }

    #game-columns {
        height: 1fr;
    }

    #stats-column {
        width: 44;
        padding: 0 1;
        border: solid $primary;
    }

    #log-column {
        width: 1fr;
    }

    #game-log {
        height: 1fr;
        border: solid $primary;
        padding: 0 1;
    }

    .section-header {
        text-style: bold;
        color: $accent;
        margin-top: 1;
    }

    #inventory-row {
        height: 3;
    }

    #inventory {
        width: 1fr;
    }

    .controls {
        height: 3;
        padding: 0 1;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("escape", "back", "Back"),
        Binding("l", "loot", "Loot"),
        Binding("e", "equip", "Equip"),
        Binding("s", "sell", "Sell"),
        Binding("f", "fight", "Fight"),
        Binding("u", "upgrade", "Upgrade Lamp"),
    ]

    def __init__(self, store: Optional[SaveStore] = None):
        super().__init__()
        self.store = store
        self.session: Optional[GameSession] = None
        self.fighting = False

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="game-columns"):
            with Vertical(id="stats-column"):
                yield Static("Hero", classes="section-header")
                yield Static("", id="hero-stats")
                yield Static("Dungeon", classes="section-header")
                yield Static("", id="dungeon-stats")
                yield Static("Lamp", classes="section-header")
                yield Static("", id="lamp-stats")
                yield Static("Equipment", classes="section-header")
                yield Static("", id="equipment")
            with Vertical(id="log-column"):
                yield RichLog(id="game-log", highlight=True, markup=True)
                with Horizontal(id="inventory-row"):
                    yield Select([], prompt="Inventory", id="inventory")
        with Container():
            with Horizontal(classes="controls"):
                yield Button("Loot", id="loot-button", variant="success")
                yield Button("Equip", id="equip-button", variant="primary")
                yield Button("Sell", id="sell-button", variant="default")
                yield Button("Fight", id="fight-button", variant="error")
                yield Button("Upgrade Lamp", id="upgrade-button", variant="warning")
            with Horizontal(classes="controls"):
                yield Button("+10 Lamps", id="add-lamps-button", variant="default")
                yield Button("+1K Gold", id="add-gold-button", variant="default")
                yield Button("Reset Game", id="reset-button", variant="error")
                yield Button("Back", id="back-button", variant="default")
        yield Footer()

    def on_mount(self) -> None:
        store = self.store or self.app.store
        self.session = GameSession.resume(store, config=self.app.balance)
        log = self.query_one("#game-log", RichLog)
        log.write(f"[bold]Game loaded[/bold] from {store.path}")
        self.refresh_panels()

    def on_screen_resume(self) -> None:
        if self.session is not None:
            self.session.apply_config(self.app.balance)
            self.refresh_panels()

    # ------------------------------------------------------------------
    # Panels

    def refresh_panels(self) -> None:
        state = self.session.state
        hero, lamp, dungeon = state.hero, state.lamp, state.dungeon

        self.query_one("#hero-stats", Static).update(
            f"Level {hero.level}  XP {hero.xp}/{self.session.catalog.xp_for_next_level(hero.level)}\n"
            f"HP {hero.hp}/{hero.max_hp}  Damage {hero.damage}\n"
            f"Power {format_number(hero.power)}\n"
            f"Gold {format_number(hero.gold)}  Lamps {hero.lamps}"
        )

        boss = "  [bold red]BOSS[/bold red]" if is_boss_stage(dungeon.stage) else ""
        self.query_one("#dungeon-stats", Static).update(
            f"Stage {format_stage(dungeon.chapter, dungeon.stage)}{boss}\n"
            f"Enemy power {format_number(self.session.enemy_power())}\n"
            f"Difficulty {format_percent(dungeon.difficulty_modifier)}"
        )

        cost = self.session.lamp_model.upgrade_cost(lamp.level)
        counters = state.loot_counters
        upgrade_every = self.session.loot.guaranteed_upgrade_interval(dungeon.global_stage)
        rarity, rarity_every = self.session.loot.guaranteed_rarity(lamp, dungeon)
        lamp_text = Text(
            f"Level {lamp.level}  Next: {format_number(cost) if cost is not None else 'max'}\n"
            f"Rarity x {format_multiplier(lamp.current_rarity_multiplier)}\n"
            f"Upgrade in {max(0, upgrade_every - counters.since_guaranteed_upgrade) if upgrade_every else '-'}\n"
        )
        lamp_text.append("Guaranteed ")
        lamp_text.append(rarity.display_name, style=rarity.color)
        lamp_text.append(
            f" in {max(0, rarity_every - counters.since_guaranteed_rarity) if rarity_every else '-'}"
        )
        self.query_one("#lamp-stats", Static).update(lamp_text)

        unlocked = {info.id for info in self.session.catalog.unlocked_slots(dungeon.global_stage)}
        equipment = Text()
        for slot in Slot:
            if slot.value not in unlocked:
                continue
            item = hero.equipment.get(slot)
            equipment.append(f"{slot.value:<9}")
            if item is None:
                equipment.append("-", style="dim")
            else:
                equipment.append(f"{item.rarity.display_name} ", style=item.rarity.color)
                equipment.append(f"P{format_number(item.power)}")
            equipment.append("\n")
        self.query_one("#equipment", Static).update(equipment)

        options = []
        for item in state.inventory:
            current = hero.equipped_power(item.slot)
            delta = item.power - current
            options.append((f"{item.rarity.display_name} {item.slot.value} P{item.power} ({delta:+d})", item.id))
        self.query_one("#inventory", Select).set_options(options)

    def _selected_item_id(self) -> Optional[str]:
        value = self.query_one("#inventory", Select).value
        if value is Select.BLANK:
            self.notify("Select an inventory item first", severity="warning")
            return None
        return value

    # ------------------------------------------------------------------
    # Actions

    def _log_loot(self, log: RichLog, result: LootResult) -> None:
        line = Text("Loot: ")
        if result.kind is LootKind.GUARANTEED_UPGRADE:
            line.append("[guaranteed upgrade] ", style="bold green")
        elif result.kind is LootKind.GUARANTEED_RARITY:
            line.append("[guaranteed rarity] ", style="bold magenta")
        line.append_text(item_text(result.item))
        log.write(line)

    def action_loot(self) -> None:
        if self.fighting:
            return
        result = self.session.open_loot()
        if result is None:
            self.notify("No lamps left", severity="warning")
            return
        self._log_loot(self.query_one("#game-log", RichLog), result)
        self.refresh_panels()

    def action_equip(self) -> None:
        item_id = self._selected_item_id()
        if item_id is None or self.fighting:
            return
        item = self.session.state.find_inventory_item(item_id)
        if item is None:
            return
        previous = self.session.state.hero.equipment.get(item.slot)
        gold_before = self.session.state.hero.gold
        self.session.equip_from_inventory(item_id)
        line = Text("Equipped ")
        line.append_text(item_text(item))
        if previous is not None:
            line.append(f"  (sold old for {self.session.state.hero.gold - gold_before} gold)", style="dim")
        self.query_one("#game-log", RichLog).write(line)
        self.refresh_panels()

    def action_sell(self) -> None:
        item_id = self._selected_item_id()
        if item_id is None or self.fighting:
            return
        price = self.session.sell_item(item_id)
        self.query_one("#game-log", RichLog).write(f"Sold item for [yellow]{price}[/yellow] gold")
        self.refresh_panels()

    def action_upgrade(self) -> None:
        if self.fighting:
            return
        lamp = self.session.state.lamp
        cost = self.session.lamp_model.upgrade_cost(lamp.level)
        if self.session.upgrade_lamp():
            self.query_one("#game-log", RichLog).write(
                f"Lamp upgraded to level [bold]{lamp.level}[/bold] for {format_number(cost)} gold"
            )
        elif cost is None:
            self.notify("Lamp is at max level", severity="warning")
        else:
            self.notify(f"Need {format_number(cost)} gold", severity="warning")
        self.refresh_panels()

    def action_fight(self) -> None:
        if self.fighting:
            return
        self.fighting = True
        asyncio.create_task(self._fight_async())

    async def _fight_async(self) -> None:
        """Play the battle round by round."""
        log = self.query_one("#game-log", RichLog)
        battle = self.session.start_battle()
        dungeon = self.session.state.dungeon
        names = ", ".join(f"{e.name} ({e.hp}hp/{e.damage}dmg)" for e in self.session.battle_enemies)
        log.write(f"[bold]Battle {format_stage(dungeon.chapter, dungeon.stage)}[/bold]: {names}")

        shown = 0
        while not battle.is_complete:
            battle = self.session.step_battle()
            for entry in battle.log[shown:]:
                style = "cyan" if entry.attacker == "Hero" else "red"
                log.write(Text(
                    f"  R{entry.turn} {entry.attacker} hits {entry.target} for {entry.damage} "
                    f"({entry.target_hp_after} left)",
                    style=style,
                ))
            shown = len(battle.log)
            await asyncio.sleep(BATTLE_STEP_DELAY)

        result = self.session.finish_battle()
        self._log_result(log, result)
        self.fighting = False
        self.refresh_panels()

    def _log_result(self, log: RichLog, result: BattleResult) -> None:
        rewards = self.session.last_rewards
        if result.victory:
            log.write(
                f"[bold green]Victory[/bold green] in {result.rounds} rounds: "
                f"+{rewards.gold} gold, +{rewards.xp} xp, +{rewards.lamps} lamps"
            )
            if rewards.levels_gained:
                log.write(f"[bold]Level up![/bold] Hero is now level {self.session.state.hero.level}")
        elif result.timed_out:
            log.write(f"[bold red]Defeat[/bold red]: battle ran out of rounds ({result.rounds})")
        else:
            log.write(f"[bold red]Defeat[/bold red] after {result.rounds} rounds")
        if rewards.difficulty_changed:
            log.write("[dim]Enemies at this stage got weaker[/dim]")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "loot-button":
            self.action_loot()
        elif button_id == "equip-button":
            self.action_equip()
        elif button_id == "sell-button":
            self.action_sell()
        elif button_id == "fight-button":
            self.action_fight()
        elif button_id == "upgrade-button":
            self.action_upgrade()
        elif button_id == "add-lamps-button" and not self.fighting:
            self.session.add_lamps(10)
            self.refresh_panels()
        elif button_id == "add-gold-button" and not self.fighting:
            self.session.add_gold(1000)
            self.refresh_panels()
        elif button_id == "reset-button" and not self.fighting:
            self.session.reset()
            log = self.query_one("#game-log", RichLog)
            log.clear()
            log.write("[bold]New game started[/bold]")
            self.refresh_panels()
        elif button_id == "back-button":
            self.action_back()

    def action_back(self) -> None:
        if self.fighting:
            self.notify("Battle in progress", severity="warning")
            return
        self.app.pop_screen()


class BattleEconomyApp(App):
    """Main TUI application."""

    TITLE = "Battle Economy"
    CSS = """
    Screen {
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
    ]

    def __init__(self, store: Optional[SaveStore] = None):
        super().__init__()
        self.store = store or SaveStore()
        self.preset_id = presets.DEFAULT_PRESET
        self.balance = PresetRegistry.get(self.preset_id).build_config(BalanceConfig())

    def on_mount(self) -> None:
        self.push_screen(SetupScreen())


def main():
    """Entry point for the TUI."""
    app = BattleEconomyApp()
    app.run()


if __name__ == "__main__":
    main()
