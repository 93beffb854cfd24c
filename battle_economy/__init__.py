"""Economy and balance engine for the battle loot game."""

__version__ = "0.1.0"
