"""Balance tables for the battle economy.

Static game data: rarity tiers, equipment slots, lamp levels, sell prices,
hero growth and the enemy/XP stage table. Tunable numeric parameters that a
balance run may override live in balance.py; everything here is loaded once
into validated catalogs by catalog.py.
"""

# Stages per chapter; the last stage of every chapter is the boss
STAGES_PER_CHAPTER: int = 10

# Hard cap of rounds per battle
BATTLE_ROUND_CAP: int = 100

# Loots attempted after a defeat before the tester gives up on an upgrade
LOOTS_PER_PHASE_CAP: int = 100

# Effective power weighting: power = hp + DAMAGE_POWER_WEIGHT * damage
DAMAGE_POWER_WEIGHT: int = 4

# Rarity tiers in ascending order (declaration order is significant)
# Format: (id, power multiplier, color, display name)
RARITIES: list[tuple[str, float, str, str]] = [
    ("common", 1.0, "#9ca3af", "Common"),
    ("good", 1.5, "#22c55e", "Good"),
    ("rare", 2.25, "#3b82f6", "Rare"),
    ("epic", 3.4, "#a855f7", "Epic"),
    ("mythic", 5.1, "#ef4444", "Mythic"),
    ("legendary", 7.6, "#f59e0b", "Legendary"),
    ("immortal", 11.4, "#ec4899", "Immortal"),
]

# Equipment slots
# Format: {slot_id: (unlock_stage, hp_ratio, damage_ratio)}
# unlock_stage is the global stage index at which the slot starts dropping
SLOTS: dict[str, tuple[int, float, float]] = {
    "weapon": (1, 0.1, 0.9),
    "helmet": (1, 0.8, 0.2),
    "armor": (1, 0.9, 0.1),
    "gloves": (3, 0.4, 0.6),
    "shoes": (5, 0.7, 0.3),
    "magic": (30, 0.2, 0.8),
    "ring": (8, 0.5, 0.5),
    "amulet": (15, 0.6, 0.4),
    "pants": (11, 0.8, 0.2),
    "cloak": (20, 0.7, 0.3),
    "artefact": (40, 0.3, 0.7),
    "belt": (25, 0.85, 0.15),
}

# Lamp levels: price is the gold needed to reach that level
# Format: {level: (price, {rarity_id: weight})}
LAMP_LEVELS: dict[int, tuple[int, dict[str, int]]] = {
    1: (0, {"common": 100}),
    2: (50, {"common": 90, "good": 10}),
    3: (120, {"common": 80, "good": 18, "rare": 2}),
    4: (250, {"common": 70, "good": 25, "rare": 5}),
    5: (500, {"common": 60, "good": 30, "rare": 9, "epic": 1}),
    6: (900, {"common": 52, "good": 32, "rare": 13, "epic": 3}),
    7: (1_500, {"common": 45, "good": 33, "rare": 16, "epic": 5, "mythic": 1}),
    8: (2_400, {"common": 38, "good": 33, "rare": 20, "epic": 7, "mythic": 2}),
    9: (3_800, {"common": 32, "good": 32, "rare": 23, "epic": 9, "mythic": 4}),
    10: (5_800, {"common": 27, "good": 31, "rare": 25, "epic": 11, "mythic": 5, "legendary": 1}),
    11: (8_500, {"common": 23, "good": 29, "rare": 26, "epic": 13, "mythic": 7, "legendary": 2}),
    12: (12_000, {"common": 19, "good": 27, "rare": 27, "epic": 15, "mythic": 9, "legendary": 3}),
    13: (17_000, {"common": 16, "good": 25, "rare": 27, "epic": 17, "mythic": 11, "legendary": 4}),
    14: (24_000, {"common": 13, "good": 23, "rare": 27, "epic": 19, "mythic": 12, "legendary": 5, "immortal": 1}),
    15: (33_000, {"common": 11, "good": 21, "rare": 26, "epic": 21, "mythic": 13, "legendary": 6, "immortal": 2}),
    16: (45_000, {"common": 9, "good": 19, "rare": 25, "epic": 22, "mythic": 15, "legendary": 7, "immortal": 3}),
    17: (60_000, {"common": 7, "good": 17, "rare": 24, "epic": 23, "mythic": 16, "legendary": 9, "immortal": 4}),
    18: (80_000, {"common": 5, "good": 15, "rare": 23, "epic": 24, "mythic": 18, "legendary": 10, "immortal": 5}),
    19: (105_000, {"common": 4, "good": 13, "rare": 22, "epic": 24, "mythic": 19, "legendary": 12, "immortal": 6}),
    20: (140_000, {"common": 3, "good": 11, "rare": 20, "epic": 25, "mythic": 20, "legendary": 14, "immortal": 7}),
}

MAX_LAMP_LEVEL: int = max(LAMP_LEVELS)

# Gold received when selling an item
# Format: {rarity_id: (min_price, max_price)}
SELL_PRICES: dict[str, tuple[int, int]] = {
    "common": (2, 5),
    "good": (4, 10),
    "rare": (10, 20),
    "epic": (25, 50),
    "mythic": (60, 120),
    "legendary": (150, 300),
    "immortal": (400, 800),
}

# Hero base stats (before equipment) and growth per level
HERO_BASE_HP: int = 100
HERO_BASE_DAMAGE: int = 10
HERO_HP_PER_LEVEL: int = 10
HERO_DAMAGE_PER_LEVEL: int = 2

# Enemy name pools
ENEMY_NAMES: list[str] = [
    "Goblin", "Skeleton", "Orc", "Troll", "Zombie",
    "Ghost", "Spider", "Slime", "Rat", "Wolf",
]
BOSS_NAMES: list[str] = [
    "Goblin King", "Lich", "Orc Warlord", "Mountain Troll",
    "Necromancer", "Shadow Demon", "Spider Queen",
]

# Stage table generation
ENEMY_BASE_POWER: int = 100
ENEMY_POWER_GROWTH: float = 1.15
STAGE_XP_BASE: int = 10
STAGE_XP_PER_STAGE: int = 2
STAGE_TABLE_SIZE: int = 300

# XP needed to go from level N to N+1
XP_BASE: int = 10
XP_PER_LEVEL: int = 2
XP_TABLE_SIZE: int = 300

# Format: [(enemy_base_power, xp_reward)], index 0 = global stage 1
STAGE_TABLE: list[tuple[int, int]] = [
    (
        round(ENEMY_BASE_POWER * ENEMY_POWER_GROWTH ** (stage - 1)),
        STAGE_XP_BASE + STAGE_XP_PER_STAGE * (stage - 1),
    )
    for stage in range(1, STAGE_TABLE_SIZE + 1)
]

# Format: [xp_to_next_level], index 0 = level 1
XP_TABLE: list[int] = [
    XP_BASE + XP_PER_LEVEL * (level - 1)
    for level in range(1, XP_TABLE_SIZE + 1)
]
