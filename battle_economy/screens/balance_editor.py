"""Balance parameter editor screen."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, ScrollableContainer
from textual.screen import Screen
from textual.widgets import Button, Checkbox, Footer, Header, Input, Label, Rule, Select, Static

from battle_economy.balance import BalanceConfig, FeatureFlags
from battle_economy.core import PresetRegistry
from battle_economy.models import Rarity

# (field, label) pairs shown in the editor, grouped by section
BALANCE_SECTIONS = [
    ("Item Power", [
        ("base_power_per_level", "Base power per level:"),
        ("power_growth_per_level", "Power growth per level:"),
        ("power_variance", "Power variance:"),
        ("min_level_offset", "Min level offset:"),
        ("max_rarity_level_offset", "Max rarity level offset:"),
    ]),
    ("Guarantees", [
        ("guaranteed_upgrade_every_n", "Upgrade every N loots:"),
        ("guaranteed_upgrade_increase_every_n_stages", "N grows every stages:"),
        ("guaranteed_rarity_interval_multiplier", "Rarity interval multiplier:"),
    ]),
    ("Difficulty", [
        ("difficulty_on_victory", "On victory:"),
        ("difficulty_on_defeat", "On defeat:"),
        ("boss_power_multiplier", "Boss power multiplier:"),
    ]),
    ("Rarity Multiplier Smoothing", [
        ("min_prob_for_gradual_growth", "Min probability:"),
        ("steps_to_target", "Steps to target:"),
        ("base_drops_for_multiplier", "Base drops:"),
        ("drops_per_chapter", "Drops per chapter:"),
    ]),
    ("Enemies & Rewards", [
        ("hp_to_damage_ratio", "HP to damage ratio:"),
        ("min_enemies", "Min enemies:"),
        ("max_enemies", "Max enemies:"),
        ("gold_per_enemy", "Gold per enemy:"),
        ("gold_per_stage_clear", "Gold per stage clear:"),
        ("lamps_per_stage_clear", "Lamps per stage clear:"),
        ("starting_lamps", "Starting lamps:"),
    ]),
]

FEATURE_LABELS = {
    "item_level_range": "Item level range",
    "power_variance": "Power variance",
    "guaranteed_upgrade": "Guaranteed upgrade",
    "rarity_weighting": "Rarity weighting",
    "guaranteed_rarity": "Guaranteed rarity",
}


class BalanceEditorScreen(Screen):
    """Edit the balance config shared by the tester and the game."""

    CSS = """
    BalanceEditorScreen {
        layout: vertical;
    }

    #balance-container {
        padding: 1 2;
        height: auto;
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

    .config-row {
        height: 3;
        margin-bottom: 1;
    }

    .config-label {
        width: 34;
        content-align: left middle;
    }

    .config-input {
        width: 18;
    }

    .config-select {
        width: 30;
    }

    #save-button {
        margin-top: 2;
        width: 100%;
    }
    """

    BINDINGS = [
        Binding("escape", "back", "Back"),
        Binding("ctrl+s", "save", "Save"),
    ]

    def compose(self) -> ComposeResult:
        balance: BalanceConfig = self.app.balance
        yield Header()

        with ScrollableContainer(id="balance-container"):
            yield Static("Balance Settings", id="title")
            yield Rule()

            yield Static("Preset", classes="section-title")
            yield Static("(Choosing a preset sets the feature toggles below)")
            with Horizontal(classes="config-row"):
                yield Label("Load preset:", classes="config-label")
                yield Select(
                    [(info.name, info.id) for info in PresetRegistry.get_all_info()],
                    value=self.app.preset_id,
                    id="preset",
                    classes="config-select",
                )

            yield Static("Features", classes="section-title")
            for flag, enabled in balance.features.to_dict().items():
                with Horizontal(classes="config-row"):
                    yield Checkbox(FEATURE_LABELS[flag], value=enabled, id=f"feature-{flag}")

            for title, rows in BALANCE_SECTIONS:
                yield Rule()
                yield Static(title, classes="section-title")
                for name, label in rows:
                    value = getattr(balance, name)
                    with Horizontal(classes="config-row"):
                        yield Label(label, classes="config-label")
                        yield Input(
                            value=str(value),
                            id=f"field-{name}",
                            classes="config-input",
                            type="integer" if isinstance(value, int) else "number",
                        )
                if title == "Difficulty":
                    with Horizontal(classes="config-row"):
                        yield Checkbox(
                            "Adaptive difficulty", value=balance.difficulty_enabled, id="difficulty-enabled"
                        )

            yield Rule()
            yield Static("Rarity Multipliers", classes="section-title")
            for rarity in Rarity:
                with Horizontal(classes="config-row"):
                    yield Label(f"{rarity.display_name}:", classes="config-label")
                    yield Input(
                        value=str(balance.rarity_multipliers[rarity.value]),
                        id=f"rarity-{rarity.value}",
                        classes="config-input",
                        type="number",
                    )

            yield Rule()
            yield Button("Save & Return", id="save-button", variant="success")
            yield Button("Reset to Defaults", id="defaults-button", variant="warning")

        yield Footer()

    def on_select_changed(self, event: Select.Changed) -> None:
        if event.select.id != "preset" or event.value is Select.BLANK:
            return
        preset = PresetRegistry.get(event.value)
        if preset is None:
            return
        for flag, enabled in preset.get_info().features.to_dict().items():
            self.query_one(f"#feature-{flag}", Checkbox).value = enabled

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "save-button":
            self._save_balance()
        elif event.button.id == "defaults-button":
            self._load_defaults()

    def action_save(self) -> None:
        self._save_balance()

    def action_back(self) -> None:
        """Return without saving."""
        self.app.pop_screen()

    def collect_overrides(self) -> dict:
        """Read every widget into an overrides mapping."""
        overrides = {}
        for _, rows in BALANCE_SECTIONS:
            for name, _ in rows:
                overrides[name] = self.query_one(f"#field-{name}", Input).value.strip()
        overrides["difficulty_enabled"] = self.query_one("#difficulty-enabled", Checkbox).value
        overrides["rarity_multipliers"] = {
            rarity.value: self.query_one(f"#rarity-{rarity.value}", Input).value.strip()
            for rarity in Rarity
        }
        overrides["features"] = {
            flag: self.query_one(f"#feature-{flag}", Checkbox).value
            for flag in FeatureFlags().to_dict()
        }
        return overrides

    def _save_balance(self) -> None:
        try:
            self.app.balance = BalanceConfig().with_overrides(self.collect_overrides())
        except ValueError as e:
            self.notify(str(e), title="Invalid value", severity="error")
            return
        preset = self.query_one("#preset", Select).value
        if preset is not Select.BLANK:
            self.app.preset_id = preset
        self.notify("Balance saved", timeout=1)
        self.app.pop_screen()

    def _load_defaults(self) -> None:
        defaults = BalanceConfig()
        for _, rows in BALANCE_SECTIONS:
            for name, _ in rows:
                self.query_one(f"#field-{name}", Input).value = str(getattr(defaults, name))
        self.query_one("#difficulty-enabled", Checkbox).value = defaults.difficulty_enabled
        for rarity in Rarity:
            self.query_one(f"#rarity-{rarity.value}", Input).value = str(defaults.rarity_multipliers[rarity.value])
        for flag, enabled in defaults.features.to_dict().items():
            self.query_one(f"#feature-{flag}", Checkbox).value = enabled
