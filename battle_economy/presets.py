"""Named balance presets.

Each preset switches on a subset of the loot features so their effect on
the progression curve can be compared against the baseline. Import this
module to register all presets.
"""

from battle_economy.balance import FeatureFlags
from battle_economy.core.base import BalancePreset, PresetInfo
from battle_economy.core.registry import PresetRegistry

_ALL_OFF = dict(
    item_level_range=False,
    power_variance=False,
    guaranteed_upgrade=False,
    rarity_weighting=False,
    guaranteed_rarity=False,
)


def _flags(**enabled: bool) -> FeatureFlags:
    return FeatureFlags(**{**_ALL_OFF, **enabled})


@PresetRegistry.register
class BaselinePreset(BalancePreset):
    """Items at hero level, all common, no variance or guarantees."""

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="baseline",
            name="Baseline",
            description="Common items at hero level, no guarantees",
            order=0,
            features=_flags(),
        )


@PresetRegistry.register
class ItemLevelRangePreset(BalancePreset):

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="item_level_range",
            name="Item Level Range",
            description="Item level rolled from hero level minus an offset",
            order=1,
            features=_flags(item_level_range=True),
        )


@PresetRegistry.register
class PowerVariancePreset(BalancePreset):

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="power_variance",
            name="Power Variance",
            description="Level range plus random spread on item power",
            order=2,
            features=_flags(item_level_range=True, power_variance=True),
        )


@PresetRegistry.register
class GuaranteedUpgradePreset(BalancePreset):

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="guaranteed_upgrade",
            name="Guaranteed Upgrade",
            description="Every Nth loot upgrades the weakest slot",
            order=3,
            features=_flags(item_level_range=True, power_variance=True, guaranteed_upgrade=True),
        )


@PresetRegistry.register
class RarityWeightingPreset(BalancePreset):

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="rarity_weighting",
            name="Rarity Weighting",
            description="Lamp weights decide rarity; enemies follow the rarity multiplier",
            order=4,
            features=_flags(
                item_level_range=True,
                power_variance=True,
                guaranteed_upgrade=True,
                rarity_weighting=True,
            ),
        )


@PresetRegistry.register
class GuaranteedRarityPreset(BalancePreset):
    """Rarity weighting with the scheduled rare drop, nothing else."""

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="guaranteed_rarity",
            name="Guaranteed Rarity",
            description="Rarity weighting plus a scheduled drop of the expected tier",
            order=5,
            features=_flags(rarity_weighting=True, guaranteed_rarity=True),
        )


@PresetRegistry.register
class FullPreset(BalancePreset):
    """The live game's loot rules."""

    @classmethod
    def get_info(cls) -> PresetInfo:
        return PresetInfo(
            id="full",
            name="Full",
            description="All loot features enabled (live game rules)",
            order=6,
            features=FeatureFlags(),
        )


DEFAULT_PRESET = "full"
