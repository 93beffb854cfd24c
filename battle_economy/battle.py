"""Round-based battle resolution.

Each round the hero hits the first living enemy in spawn order, then every
enemy still alive hits the hero in list order until the hero drops to 0.
The battle ends when all enemies are dead or the hero is dead, checked after
the counter-attacks. Rounds are pure: `execute_battle_round` returns a new
state and never mutates its input.
"""

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from .config import BATTLE_ROUND_CAP
from .enemies import Enemy
from .models import Hero

HERO_ID = "hero"
HERO_NAME = "Hero"


@dataclass(frozen=True, slots=True)
class BattleUnit:
    id: str
    name: str
    hp: int
    max_hp: int
    damage: int
    is_hero: bool = False

    @property
    def alive(self) -> bool:
        return self.hp > 0


@dataclass(frozen=True, slots=True)
class BattleLogEntry:
    turn: int
    attacker: str
    target: str
    damage: int
    target_hp_after: int


@dataclass(frozen=True, slots=True)
class BattleState:
    hero: BattleUnit
    enemies: tuple[BattleUnit, ...]
    log: tuple[BattleLogEntry, ...] = ()
    current_turn: int = 0
    is_complete: bool = False
    victory: bool = False
    timed_out: bool = False


@dataclass(frozen=True, slots=True)
class BattleResult:
    """Outcome of a finished battle, as applied to the game state."""
    victory: bool
    timed_out: bool
    rounds: int
    hero_hp_remaining: int
    hero_damage_taken: int
    enemies_defeated: tuple[str, ...]
    gold_reward: int
    log: tuple[BattleLogEntry, ...]


def hero_unit(hero: Hero) -> BattleUnit:
    """Combat snapshot of the hero's current hp and stats."""
    return BattleUnit(HERO_ID, HERO_NAME, hero.hp, hero.max_hp, hero.damage, is_hero=True)


def enemy_units(enemies: Iterable[Enemy]) -> list[BattleUnit]:
    return [BattleUnit(e.id, e.name, e.hp, e.max_hp, e.damage) for e in enemies]


def init_battle(hero: BattleUnit, enemies: Iterable[BattleUnit]) -> BattleState:
    return BattleState(hero=hero, enemies=tuple(enemies))


def execute_battle_round(state: BattleState) -> BattleState:
    """Resolve one round and return the resulting state."""
    if state.is_complete:
        return state

    turn = state.current_turn + 1
    hero = state.hero
    enemies = list(state.enemies)
    log = list(state.log)

    target_index: Optional[int] = next(
        (i for i, enemy in enumerate(enemies) if enemy.alive), None
    )
    if target_index is not None:
        target = enemies[target_index]
        target = replace(target, hp=max(0, target.hp - hero.damage))
        enemies[target_index] = target
        log.append(BattleLogEntry(turn, hero.name, target.name, hero.damage, target.hp))

    for enemy in enemies:
        if not enemy.alive:
            continue
        if hero.hp <= 0:
            break
        hero = replace(hero, hp=max(0, hero.hp - enemy.damage))
        log.append(BattleLogEntry(turn, enemy.name, hero.name, enemy.damage, hero.hp))

    all_dead = all(not enemy.alive for enemy in enemies)
    hero_dead = hero.hp <= 0
    return BattleState(
        hero=hero,
        enemies=tuple(enemies),
        log=tuple(log),
        current_turn=turn,
        is_complete=all_dead or hero_dead,
        victory=all_dead and not hero_dead,
    )


def close_timed_out(state: BattleState) -> BattleState:
    """Mark an unfinished battle as a timed-out defeat."""
    if state.is_complete:
        return state
    return replace(state, is_complete=True, victory=False, timed_out=True)


def run_full_battle(
    hero: BattleUnit,
    enemies: Iterable[BattleUnit],
    round_cap: int = BATTLE_ROUND_CAP,
) -> BattleState:
    """Run rounds until the battle ends.

    Reaching the round cap ends the battle as a defeat with timed_out set.
    """
    state = init_battle(hero, enemies)
    while not state.is_complete and state.current_turn < round_cap:
        state = execute_battle_round(state)
    return close_timed_out(state)


def summarize(state: BattleState, hero_hp_before: int, gold_per_enemy: int) -> BattleResult:
    defeated = tuple(enemy.name for enemy in state.enemies if not enemy.alive)
    return BattleResult(
        victory=state.victory,
        timed_out=state.timed_out,
        rounds=state.current_turn,
        hero_hp_remaining=max(0, state.hero.hp),
        hero_damage_taken=max(0, hero_hp_before - state.hero.hp),
        enemies_defeated=defeated,
        gold_reward=len(defeated) * gold_per_enemy,
        log=state.log,
    )
