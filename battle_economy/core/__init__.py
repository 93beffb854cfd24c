"""Core abstractions for the battle economy simulator."""

from .base import BalancePreset, PresetInfo
from .registry import PresetRegistry

__all__ = [
    "BalancePreset",
    "PresetInfo",
    "PresetRegistry",
]
