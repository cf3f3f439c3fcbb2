"""
Server Families
===============

Per-family configuration and the family-id keyed strategy registry.
"""

from .registry import FamilyRegistry, FamilyStrategy, build_registry, build_strategy
from .specs import (
    BARE_METAL_PACKAGE_ID,
    DUAL_XEON_5500_MULTI_DISK_PACKAGE_ID,
    DUAL_XEON_5500_PACKAGE_ID,
    SINGLE_XEON_2000_PACKAGE_ID,
    SINGLE_XEON_3200_PACKAGE_ID,
    VIRTUAL_GUEST_PACKAGE_ID,
    FamilySpec,
    apply_config,
    build_family_specs,
)

__all__ = [
    "FamilyRegistry",
    "FamilyStrategy",
    "build_registry",
    "build_strategy",
    "BARE_METAL_PACKAGE_ID",
    "DUAL_XEON_5500_MULTI_DISK_PACKAGE_ID",
    "DUAL_XEON_5500_PACKAGE_ID",
    "SINGLE_XEON_2000_PACKAGE_ID",
    "SINGLE_XEON_3200_PACKAGE_ID",
    "VIRTUAL_GUEST_PACKAGE_ID",
    "FamilySpec",
    "apply_config",
    "build_family_specs",
]
