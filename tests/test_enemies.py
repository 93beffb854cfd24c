"""
Unit tests for enemies.py - enemy stats and wave composition.
"""
import random

from battle_economy.balance import BalanceConfig
from battle_economy.config import BOSS_NAMES, ENEMY_NAMES
from battle_economy.enemies import EnemyWaveGenerator


def make_waves(seed=0, **overrides):
    return EnemyWaveGenerator(BalanceConfig(**overrides), random.Random(seed))


class TestGenerateEnemy:
    """Tests for single enemies."""

    def test_stats_match_power(self):
        """damage = power / (4 + k), hp = damage * k."""
        enemy = make_waves().generate_enemy(1000)
        assert enemy.damage == 100
        assert enemy.hp == enemy.max_hp == 600
        assert enemy.power == 1000

    def test_damage_floor(self):
        """Weak enemies still deal 1 damage."""
        enemy = make_waves().generate_enemy(3)
        assert enemy.damage == 1
        assert enemy.hp == 6

    def test_custom_ratio(self):
        """hp_to_damage_ratio shifts stats toward hp."""
        enemy = make_waves(hp_to_damage_ratio=16.0).generate_enemy(1000)
        assert enemy.damage == 50
        assert enemy.hp == 800

    def test_names_from_pool(self):
        """Regular enemies take names from the enemy pool."""
        waves = make_waves()
        assert all(waves.generate_enemy(100).name in ENEMY_NAMES for _ in range(20))


class TestGenerateWave:
    """Tests for wave composition."""

    def test_boss_comes_alone(self):
        """Boss waves are a single boss."""
        wave = make_waves().generate_wave(500, is_boss=True)
        assert len(wave) == 1
        assert wave[0].is_boss
        assert wave[0].name in BOSS_NAMES

    def test_three_enemy_wave(self):
        """Three enemies split half the power as hp and take 6.25% each as damage."""
        wave = make_waves().generate_wave(1000, min_count=3, max_count=3)
        assert len(wave) == 3
        assert all(e.hp == 166 and e.damage == 62 for e in wave)

    def test_two_enemy_wave(self):
        """Two enemies split half the power as hp and take 8.3% each as damage."""
        wave = make_waves().generate_wave(1200, min_count=2, max_count=2)
        assert len(wave) == 2
        assert all(e.hp == 300 and e.damage == 99 for e in wave)

    def test_single_enemy_wave(self):
        """A one-enemy wave carries the full power budget."""
        wave = make_waves().generate_wave(1000, min_count=1, max_count=1)
        assert len(wave) == 1
        assert wave[0].power == 1000
        assert not wave[0].is_boss

    def test_count_within_config(self):
        """Wave sizes stay within the configured range."""
        waves = make_waves(seed=4, min_enemies=2, max_enemies=3)
        sizes = {len(waves.generate_wave(300)) for _ in range(100)}
        assert sizes == {2, 3}

    def test_unique_ids(self):
        """Enemies in a wave get distinct ids."""
        wave = make_waves().generate_wave(1000, min_count=3, max_count=3)
        assert len({e.id for e in wave}) == 3

    def test_weak_wave_members_alive(self):
        """Tiny power budgets still give every wave member at least 1 hp."""
        wave = make_waves().generate_wave(5, min_count=3, max_count=3)
        assert all(e.hp == e.max_hp == 1 for e in wave)
        assert all(e.damage == 1 for e in wave)
