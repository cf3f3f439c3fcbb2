"""
Catalog Resolution
==================

Catalog indexing, hardware profile enumeration and price combination
resolution for package catalogs.
"""

from .base import CatalogItem, PriceAlternative
from .index import CatalogIndex, compile_pattern, first_or_default
from .cache import CatalogCache
from .prices import (
    all_price_combinations,
    hardware_id,
    parse_price_ids,
    price_combinations,
    provider_hardware_id,
    split_combinations,
)
from .profiles import (
    BareMetalCpuRule,
    CapacityCpuRule,
    CategorySlot,
    CpuDescription,
    FixedCpuRule,
    HardwareIdStrategy,
    HardwareProfile,
    HardwareProfileEnumerator,
    ProfileRules,
    Volume,
    VolumeType,
    parse_id_list,
)

__all__ = [
    "CatalogItem",
    "PriceAlternative",
    "CatalogIndex",
    "CatalogCache",
    "compile_pattern",
    "first_or_default",
    "all_price_combinations",
    "hardware_id",
    "parse_price_ids",
    "price_combinations",
    "provider_hardware_id",
    "split_combinations",
    "BareMetalCpuRule",
    "CapacityCpuRule",
    "CategorySlot",
    "CpuDescription",
    "FixedCpuRule",
    "HardwareIdStrategy",
    "HardwareProfile",
    "HardwareProfileEnumerator",
    "ProfileRules",
    "Volume",
    "VolumeType",
    "parse_id_list",
]
