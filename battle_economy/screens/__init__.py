"""Shared TUI screens for the battle economy."""

from .balance_editor import BalanceEditorScreen

__all__ = [
    "BalanceEditorScreen",
]
