"""Base abstractions for balance presets."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from battle_economy.balance import BalanceConfig, FeatureFlags


@dataclass
class PresetInfo:
    """Metadata about a balance preset for display and selection.

    Attributes:
        id: Unique identifier (e.g., "baseline", "full")
        name: Display name
        description: Brief description for the selection screen
        order: Position in listings; presets are listed in ascending order
        features: Feature flags the preset turns on
        overrides: Extra balance overrides applied on top of the base config
    """
    id: str
    name: str
    description: str
    order: int = 0
    features: FeatureFlags = field(default_factory=FeatureFlags)
    overrides: dict[str, Any] = field(default_factory=dict)


class BalancePreset(ABC):
    """Abstract base class for balance presets (plugin pattern).

    Each preset is a named combination of loot feature flags that can be
    layered on top of any BalanceConfig.
    """

    @classmethod
    @abstractmethod
    def get_info(cls) -> PresetInfo:
        """Return metadata about this preset."""
        pass

    @classmethod
    def build_config(
        cls,
        base: Optional[BalanceConfig] = None,
        overrides: Optional[dict[str, Any]] = None,
    ) -> BalanceConfig:
        """Layer this preset, then user overrides, on top of `base`."""
        info = cls.get_info()
        layered: dict[str, Any] = {"features": info.features.to_dict()}
        layered.update(info.overrides)
        if overrides:
            layered.update(overrides)
        return (base or BalanceConfig()).with_overrides(layered)
