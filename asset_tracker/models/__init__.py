"""ORM models; importing this package registers every table on ``Base``."""

from .asset import Asset, AssetHistory, AssetSequence
from .holding import HoldingAsset
from .location import Department, Location
from .settings import SystemSettings
from .tenant import CustomAssetState, CustomAssetType, TenantConfig
from .user import User

__all__ = [
    "Asset",
    "AssetHistory",
    "AssetSequence",
    "CustomAssetState",
    "CustomAssetType",
    "Department",
    "HoldingAsset",
    "Location",
    "SystemSettings",
    "TenantConfig",
    "User",
]
