"""Registry for balance presets."""

from typing import Dict, Optional, Type

from .base import BalancePreset, PresetInfo


class PresetRegistry:
    """Central registry for all balance presets.

    Use the @PresetRegistry.register decorator to register presets.

    Example:
        @PresetRegistry.register
        class FullPreset(BalancePreset):
            ...
    """

    _presets: Dict[str, Type[BalancePreset]] = {}

    @classmethod
    def register(cls, preset_class: Type[BalancePreset]) -> Type[BalancePreset]:
        """Decorator to register a preset.

        Args:
            preset_class: The preset class to register

        Returns:
            The same preset class (for decorator chaining)
        """
        info = preset_class.get_info()
        cls._presets[info.id] = preset_class
        return preset_class

    @classmethod
    def get(cls, preset_id: str) -> Optional[Type[BalancePreset]]:
        """Get a preset by its ID.

        Args:
            preset_id: The unique identifier of the preset

        Returns:
            The preset class, or None if not found
        """
        return cls._presets.get(preset_id)

    @classmethod
    def get_all(cls) -> Dict[str, Type[BalancePreset]]:
        """Get all registered presets, in listing order."""
        return dict(
            sorted(cls._presets.items(), key=lambda kv: kv[1].get_info().order)
        )

    @classmethod
    def get_all_info(cls) -> list[PresetInfo]:
        """Get info for all presets, in listing order."""
        return [p.get_info() for p in cls.get_all().values()]

    @classmethod
    def ids(cls) -> list[str]:
        return list(cls.get_all())
