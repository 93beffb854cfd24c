"""
Unit tests for the balance editor's field tables.
"""
from dataclasses import fields

from battle_economy.balance import BalanceConfig, FeatureFlags
from battle_economy.screens.balance_editor import BALANCE_SECTIONS, FEATURE_LABELS


class TestBalanceEditorTables:
    """Tests for the fields the editor exposes."""

    def test_fields_exist(self):
        """Every edited field is a BalanceConfig field."""
        names = {f.name for f in fields(BalanceConfig)}
        for _, section in BALANCE_SECTIONS:
            for name, _ in section:
                assert name in names

    def test_fields_are_numbers(self):
        """Edited fields are numeric so the inputs can be typed."""
        defaults = BalanceConfig()
        for _, section in BALANCE_SECTIONS:
            for name, _ in section:
                value = getattr(defaults, name)
                assert isinstance(value, (int, float)) and not isinstance(value, bool)

    def test_feature_labels(self):
        """Every feature flag has a checkbox label."""
        assert set(FEATURE_LABELS) == {f.name for f in fields(FeatureFlags)}
