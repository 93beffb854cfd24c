"""Live game orchestration over a single GameState.

GameSession ties loot, equipment, battles and the lamp together the same
way the economy tester does, and saves through an optional SaveStore after
every state-changing operation.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from .balance import BalanceConfig, calculate_sell_price
from .battle import (
    BattleResult,
    BattleState,
    close_timed_out,
    enemy_units,
    execute_battle_round,
    hero_unit,
    init_battle,
    summarize,
)
from .catalog import CATALOG, Catalog
from .config import BATTLE_ROUND_CAP
from .dungeon import DungeonProgression, is_boss_stage
from .enemies import Enemy, EnemyWaveGenerator
from .items import ItemGenerator
from .lamp import LampModel
from .loot import LootPipeline, LootResult
from .models import GameState, Hero
from .storage import SaveStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BattleRewards:
    """What a finished battle gave the hero."""
    gold: int = 0
    xp: int = 0
    levels_gained: int = 0
    lamps: int = 0
    difficulty_changed: bool = False


class GameSession:
    """One player's game: loot, equip, fight and upgrade the lamp."""

    def __init__(
        self,
        config: Optional[BalanceConfig] = None,
        seed: Optional[int] = None,
        store: Optional[SaveStore] = None,
        state: Optional[GameState] = None,
        catalog: Optional[Catalog] = None,
    ):
        self.config = config or BalanceConfig()
        self.rng = random.Random(seed)
        self.catalog = catalog or CATALOG
        self.store = store

        self.items = ItemGenerator(self.config, self.rng, self.catalog)
        self.lamp_model = LampModel(self.config, self.rng, self.catalog)
        self.dungeon = DungeonProgression(self.config, self.catalog)
        self.waves = EnemyWaveGenerator(self.config, self.rng)
        self.loot = LootPipeline(self.config, self.items, self.lamp_model)

        self.battle: Optional[BattleState] = None
        self.battle_enemies: list[Enemy] = []
        self.last_rewards = BattleRewards()

        if state is None:
            state = self._fresh_state()
            self.state = state
            self._save()
        else:
            self.state = state

    @classmethod
    def resume(
        cls,
        store: SaveStore,
        config: Optional[BalanceConfig] = None,
        seed: Optional[int] = None,
    ) -> "GameSession":
        """Continue the saved game, or start a new one if there is none."""
        state = store.load()
        if state is None:
            logger.info("No usable save at %s, starting a new game", store.path)
        return cls(config=config, seed=seed, store=store, state=state)

    def apply_config(self, config: BalanceConfig) -> None:
        """Swap in a new balance config for all subsequent operations."""
        self.config = config
        for component in (self.items, self.lamp_model, self.dungeon, self.waves, self.loot):
            component.config = config

    def _save(self) -> None:
        if self.store is not None:
            self.store.save(self.state)

    def _fresh_state(self) -> GameState:
        hero = Hero(lamps=self.config.starting_lamps)
        hero.recalculate()
        hero.heal()
        return GameState(
            hero=hero,
            lamp=self.lamp_model.create_lamp(),
            dungeon=self.dungeon.create_progress(),
        )

    # ------------------------------------------------------------------
    # Game lifecycle

    def new_game(self) -> GameState:
        self.battle = None
        self.battle_enemies = []
        self.state = self._fresh_state()
        self._save()
        return self.state

    def reset(self) -> GameState:
        """Delete the save and start over."""
        if self.store is not None:
            self.store.clear()
        return self.new_game()

    # ------------------------------------------------------------------
    # Loot and equipment

    def open_loot(self) -> Optional[LootResult]:
        """Spend one lamp charge on a loot. None when out of charges."""
        state = self.state
        if state.hero.lamps <= 0:
            return None
        state.hero.lamps -= 1
        result = self.loot.roll(state.hero, state.lamp, state.dungeon, state.loot_counters)
        state.inventory.append(result.item)
        state.last_looted_item = result.item
        self._save()
        return result

    def sell_price(self, rarity_id: str) -> int:
        return calculate_sell_price(rarity_id, self.rng, self.catalog)

    def equip_from_inventory(self, item_id: str) -> bool:
        """Equip an inventory item; the item it replaces is sold."""
        state = self.state
        item = state.find_inventory_item(item_id)
        if item is None:
            return False
        state.inventory.remove(item)
        previous = state.hero.equip(item)
        if previous is not None:
            state.hero.gold += self.sell_price(previous.rarity.value)
        self._save()
        return True

    def sell_item(self, item_id: str) -> Optional[int]:
        """Sell an inventory item. Returns the gold received."""
        state = self.state
        item = state.find_inventory_item(item_id)
        if item is None:
            return None
        state.inventory.remove(item)
        price = self.sell_price(item.rarity.value)
        state.hero.gold += price
        self._save()
        return price

    # ------------------------------------------------------------------
    # Battles

    def total_slots(self) -> int:
        return len(self.catalog.unlocked_slots(self.state.dungeon.global_stage))

    def enemy_power(self) -> int:
        """Adjusted power of the enemies at the current stage."""
        return self.dungeon.get_adjusted_enemy_power(
            self.state.dungeon, self.state.lamp.current_rarity_multiplier
        )

    def generate_enemies(self) -> list[Enemy]:
        return self.waves.generate_wave(
            self.enemy_power(), is_boss=is_boss_stage(self.state.dungeon.stage)
        )

    def start_battle(self) -> BattleState:
        """Heal the hero and set up a battle for the current stage."""
        hero = self.state.hero
        hero.heal()
        self.battle_enemies = self.generate_enemies()
        self.battle = init_battle(hero_unit(hero), enemy_units(self.battle_enemies))
        return self.battle

    def step_battle(self) -> BattleState:
        """Play one round of the running battle.

        Raises:
            RuntimeError: if no battle is running or it already finished
        """
        if self.battle is None or self.battle.is_complete:
            raise RuntimeError("No battle in progress")
        battle = execute_battle_round(self.battle)
        if not battle.is_complete and battle.current_turn >= BATTLE_ROUND_CAP:
            battle = close_timed_out(battle)
        self.battle = battle
        return battle

    def finish_battle(self) -> BattleResult:
        """Play out any remaining rounds and apply the result.

        Raises:
            RuntimeError: if no battle was started
        """
        if self.battle is None:
            raise RuntimeError("No battle in progress")
        while not self.battle.is_complete:
            self.step_battle()
        result = self._apply_battle_result(self.battle)
        self.battle = None
        self.battle_enemies = []
        return result

    def fight(self) -> BattleResult:
        """Run a whole battle at the current stage and apply the result."""
        self.start_battle()
        return self.finish_battle()

    def _apply_battle_result(self, battle: BattleState) -> BattleResult:
        state = self.state
        hero = state.hero
        dungeon_state = state.dungeon
        result = summarize(battle, hero.hp, self.config.gold_per_enemy)
        hero.hp = max(0, hero.hp - result.hero_damage_taken)

        if result.victory:
            gold = result.gold_reward + self.config.gold_per_stage_clear
            xp = self.dungeon.get_stage_xp_reward(dungeon_state.chapter, dungeon_state.stage)
            hero.gold += gold
            hero.lamps += self.config.lamps_per_stage_clear
            levels = hero.add_xp(xp, self.catalog)
            self.dungeon.adjust_difficulty_on_victory(dungeon_state)
            self.lamp_model.update_rarity_multiplier_after_kill(
                state.lamp, self.total_slots(), dungeon_state.chapter
            )
            self.dungeon.advance(dungeon_state)
            hero.heal()
            self.last_rewards = BattleRewards(
                gold=gold, xp=xp, levels_gained=levels, lamps=self.config.lamps_per_stage_clear
            )
        else:
            changed = self.dungeon.adjust_difficulty_on_defeat(dungeon_state)
            self.last_rewards = BattleRewards(difficulty_changed=changed)

        state.last_battle_result = result
        self._save()
        return result

    # ------------------------------------------------------------------
    # Lamp and resources

    def upgrade_lamp(self) -> bool:
        """Buy the next lamp level. False when at max or not affordable."""
        state = self.state
        cost = self.lamp_model.upgrade_cost(state.lamp.level)
        if cost is None or state.hero.gold < cost:
            return False
        state.hero.gold -= cost
        self.lamp_model.level_up(state.lamp)
        self._save()
        return True

    def add_lamps(self, count: int) -> None:
        self.state.hero.lamps += count
        self._save()

    def add_gold(self, amount: int) -> None:
        self.state.hero.gold += amount
        self._save()
