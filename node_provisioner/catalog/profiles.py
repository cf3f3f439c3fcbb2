"""
Hardware Profile Enumeration
============================

Walks a package catalog and produces every legal hardware profile for a
server family: one representative item per required category, plus any
configured extra disks and disk controller.

Families differ only in configuration (``ProfileRules``): which
categories are required, how the CPU item is recognised and described,
whether RAM is read from the CPU description, how disks are named and
how the hardware id is built.
"""

import itertools
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ..errors import CatalogResolutionError, ConfigurationError
from .base import CatalogItem
from .index import CatalogIndex, compile_pattern, first_or_default
from .prices import all_price_combinations, hardware_id, provider_hardware_id

logger = logging.getLogger(__name__)

CORE_COUNT_PATTERN = re.compile(r"\s*(?:Private )?([0-9]+) x")


class HardwareIdStrategy(Enum):
    """How a profile's externally visible hardware id is built."""
    SINGLE = "single"  # first price of each item
    MULTI = "multi"    # every price combination, ';'-separated


class VolumeType(Enum):
    SAN = "SAN"
    LOCAL = "LOCAL"


@dataclass(frozen=True)
class Volume:
    """A disk in a hardware profile."""
    item_id: int
    size: Optional[float]
    type: VolumeType
    bootable: bool


@dataclass(frozen=True)
class CpuDescription:
    """Processor facts read from a CPU item. ``ram`` is set only by bare-metal rules."""
    cores: float
    speed: float
    ram: Optional[float] = None


def _core_count(item: CatalogItem) -> float:
    if item.capacity is not None:
        return item.capacity
    match = CORE_COUNT_PATTERN.match(item.description or "")
    return float(match.group(1)) if match else 0.0


# =========================================
# CPU RULES
# =========================================

@dataclass(frozen=True)
class CapacityCpuRule:
    """
    Cores from the item capacity, speed from the last group of
    ``speed_pattern`` (``default_speed`` when the description does not match).
    """
    speed_pattern: str = r"(Private )?[0-9]+ x ([.0-9]+) GHz Core[s]?"
    default_speed: float = 2.0

    def __post_init__(self):
        compile_pattern(self.speed_pattern)

    def describe(self, item: Optional[CatalogItem]) -> CpuDescription:
        if item is None:
            raise CatalogResolutionError("Profile has no CPU item")
        speed = self.default_speed
        match = compile_pattern(self.speed_pattern).fullmatch((item.description or "").strip())
        if match and match.lastindex and match.group(match.lastindex):
            speed = float(match.group(match.lastindex))
        return CpuDescription(cores=_core_count(item), speed=speed)


@dataclass(frozen=True)
class BareMetalCpuRule:
    """
    Bare-metal items describe cores, speed and RAM in one line, e.g.
    ``16 x 2.0 GHz Core Bare Metal Instance - 64 GB Ram``.
    """
    pattern: str = r"([0-9]+) x ([.0-9]+) GHz Core Bare Metal Instance - ([.0-9]+) GB Ram"

    def __post_init__(self):
        if compile_pattern(self.pattern).groups < 3:
            raise ConfigurationError(
                f"Bare metal pattern needs core, speed and RAM groups: {self.pattern!r}"
            )

    def describe(self, item: Optional[CatalogItem]) -> CpuDescription:
        if item is None:
            raise CatalogResolutionError("Profile has no CPU item")
        description = (item.description or "").strip()
        match = compile_pattern(self.pattern).fullmatch(description)
        if not match:
            raise CatalogResolutionError(
                f"Failed matching [{description}] by regex {self.pattern}"
            )
        cores = item.capacity if item.capacity is not None else float(match.group(1))
        return CpuDescription(
            cores=cores,
            speed=float(match.group(2)),
            ram=float(match.group(3)),
        )


@dataclass(frozen=True)
class FixedCpuRule:
    """Server series whose processor is implied by the package."""
    cores: float
    speed: float

    def describe(self, item: Optional[CatalogItem]) -> CpuDescription:
        return CpuDescription(cores=self.cores, speed=self.speed)


# =========================================
# FAMILY RULES
# =========================================

@dataclass(frozen=True)
class CategorySlot:
    """
    One required (or optional) position of a hardware profile.

    Candidates are the items in ``category`` (all items when None) whose
    description fully matches ``description_pattern`` (when set).
    """
    role: str
    category: Optional[str] = None
    description_pattern: Optional[str] = None
    optional: bool = False

    def __post_init__(self):
        if self.category is None and self.description_pattern is None:
            raise ConfigurationError(f"Slot {self.role} needs a category or a description pattern")
        if self.description_pattern is not None:
            compile_pattern(self.description_pattern)

    def candidates(self, index: CatalogIndex) -> List[CatalogItem]:
        items = index.items_by_category(self.category) if self.category else index.items
        if self.description_pattern is not None:
            regex = compile_pattern(self.description_pattern)
            items = [item for item in items if regex.fullmatch(item.description or "")]
        return items


@dataclass(frozen=True)
class ProfileRules:
    """Per-family configuration of the hardware profile enumerator."""
    slots: Tuple[CategorySlot, ...]
    cpu_rule: object
    boot_disk_category: str
    disk_category_pattern: str
    ram_from_cpu: bool = False
    hardware_id_strategy: HardwareIdStrategy = HardwareIdStrategy.SINGLE
    extra_disk_category_pattern: Optional[str] = None
    extra_disk_ids: Tuple[str, ...] = ()
    disk_controller_category: Optional[str] = None
    disk_controller_id: Optional[str] = None

    def __post_init__(self):
        roles = [slot.role for slot in self.slots]
        if len(set(roles)) != len(roles):
            raise ConfigurationError(f"Duplicate slot roles: {roles}")
        compile_pattern(self.disk_category_pattern)
        if self.extra_disk_category_pattern is not None:
            compile_pattern(self.extra_disk_category_pattern)
        object.__setattr__(self, "extra_disk_ids", tuple(self.extra_disk_ids))


def parse_id_list(value: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated id list, dropping blanks."""
    if not value:
        return ()
    return tuple(token.strip() for token in value.split(",") if token.strip())


@dataclass(frozen=True)
class HardwareProfile:
    """
    One complete, family-valid selection of catalog items.

    Attributes:
        id: Hardware id offered to callers (single template or multi-candidate)
        provider_id: Comma-joined item ids
        price_template: First price of each item, comma-joined
    """
    family_id: int
    items: Tuple[CatalogItem, ...]
    id: str
    provider_id: str
    price_template: str
    cores: float
    core_speed: float
    ram: float
    volumes: Tuple[Volume, ...] = field(default=())
    additional_disks: Tuple[CatalogItem, ...] = field(default=())


# =========================================
# ENUMERATOR
# =========================================

class HardwareProfileEnumerator:
    """
    Enumerates hardware profiles for one server family.

    The profile order is the nested iteration order of the slots, i.e. the
    cartesian product of each slot's candidates in catalog order.
    """

    def __init__(
        self,
        family_id: int,
        rules: ProfileRules,
        catalog: Callable[[], CatalogIndex],
    ):
        """
        Args:
            family_id: Server family (package) id
            rules: Family configuration
            catalog: Supplies the (memoized) catalog index for the family
        """
        self.family_id = family_id
        self.rules = rules
        self._catalog = catalog

    def __iter__(self) -> Iterator[HardwareProfile]:
        return self.profiles()

    def profiles(self) -> Iterator[HardwareProfile]:
        """
        Yield every hardware profile the catalog allows.

        Profiles whose items cannot be described are logged and skipped.

        Raises:
            CatalogResolutionError: If a configured extra disk cannot be found
            ConfigurationError: If a required disk controller is missing
        """
        index = self._catalog()

        candidate_lists: List[List[Optional[CatalogItem]]] = []
        for slot in self.rules.slots:
            candidates: List[Optional[CatalogItem]] = list(slot.candidates(index))
            if not candidates:
                if not slot.optional:
                    logger.info(
                        f"No items for required {slot.role} slot in family {self.family_id}",
                        extra={"family_id": self.family_id},
                    )
                    return
                candidates = [None]
            candidate_lists.append(candidates)

        extras = self.resolve_extra_disks(index)
        controller = self.resolve_disk_controller(index)

        for combination in itertools.product(*candidate_lists):
            by_role = {
                slot.role: item
                for slot, item in zip(self.rules.slots, combination)
                if item is not None
            }
            items = [item for item in combination if item is not None] + extras + controller
            try:
                yield self.build_profile(items, by_role)
            except CatalogResolutionError as e:
                logger.warning(
                    f"Skipping hardware profile {provider_hardware_id(items)}: {e}",
                    extra={"family_id": self.family_id},
                )

    def build_profile(
        self,
        items: Sequence[CatalogItem],
        by_role: Dict[str, CatalogItem],
    ) -> HardwareProfile:
        """
        Describe a list of items as a hardware profile.

        Raises:
            CatalogResolutionError: If the items cannot be described
        """
        rules = self.rules
        cpu = rules.cpu_rule.describe(by_role.get("cpu"))

        if rules.ram_from_cpu:
            ram = cpu.ram
        else:
            ram_item = by_role.get("ram")
            if ram_item is None:
                raise CatalogResolutionError("Profile has no RAM item")
            ram = ram_item.capacity or 0.0

        if rules.hardware_id_strategy == HardwareIdStrategy.MULTI:
            profile_id = all_price_combinations(items)
        else:
            profile_id = hardware_id(items)

        return HardwareProfile(
            family_id=self.family_id,
            items=tuple(items),
            id=profile_id,
            provider_id=provider_hardware_id(items),
            price_template=hardware_id(items),
            cores=cpu.cores,
            core_speed=cpu.speed,
            ram=ram,
            volumes=tuple(self._volumes(items)),
            additional_disks=tuple(self._additional_disks(items, by_role.get("disk0"))),
        )

    # =========================================
    # DISKS
    # =========================================

    def _disks(self, items: Sequence[CatalogItem]) -> List[CatalogItem]:
        regex = compile_pattern(self.rules.disk_category_pattern)
        return [
            item for item in items
            if any(regex.fullmatch(code) for code in item.categories)
        ]

    def _volumes(self, items: Sequence[CatalogItem]) -> List[Volume]:
        return [
            Volume(
                item_id=item.id,
                size=item.capacity,
                type=VolumeType.SAN if "SAN" in (item.description or "") else VolumeType.LOCAL,
                bootable=item.has_category(self.rules.boot_disk_category),
            )
            for item in self._disks(items)
        ]

    def _additional_disks(
        self,
        items: Sequence[CatalogItem],
        primary: Optional[CatalogItem],
    ) -> List[CatalogItem]:
        disks: List[CatalogItem] = []
        skipped_primary = primary is None
        for item in self._disks(items):
            if not skipped_primary and item is primary:
                skipped_primary = True
                continue
            if any(item is seen for seen in disks):
                continue
            disks.append(item)
        return disks

    def _resolve_configured(self, value: str, pool: List[CatalogItem]) -> Optional[CatalogItem]:
        """Resolve an id first as a price id, then as an item id, within ``pool``."""
        try:
            numeric = int(value)
        except ValueError:
            raise ConfigurationError(f"Invalid catalog id {value!r} in family {self.family_id}")
        by_price = first_or_default(item for item in pool if item.has_price_id(numeric))
        if by_price is not None:
            return by_price
        return first_or_default(item for item in pool if item.id == numeric)

    def resolve_extra_disks(self, index: CatalogIndex) -> List[CatalogItem]:
        """
        Resolve the family's configured extra disk ids.

        Raises:
            CatalogResolutionError: If an id matches no disk item
        """
        if not self.rules.extra_disk_ids:
            return []
        if self.rules.extra_disk_category_pattern is None:
            raise ConfigurationError(f"Family {self.family_id} does not take extra disks")

        pool = index.items_in_categories_matching(self.rules.extra_disk_category_pattern)
        disks: List[CatalogItem] = []
        for value in self.rules.extra_disk_ids:
            item = self._resolve_configured(value, pool)
            if item is None:
                raise CatalogResolutionError(
                    f"Could not find extra disk item with id {value} "
                    f"in categories {self.rules.extra_disk_category_pattern}"
                )
            disks.append(item)
        return disks

    def resolve_disk_controller(self, index: CatalogIndex) -> List[CatalogItem]:
        """
        Resolve the family's configured disk controller.

        Raises:
            ConfigurationError: If the family needs a controller and none matches
        """
        category = self.rules.disk_controller_category
        if category is None:
            return []
        value = self.rules.disk_controller_id
        pool = index.items_by_category(category)
        item = self._resolve_configured(value, pool) if value else None
        if item is None:
            raise ConfigurationError(
                f"No disk controller with id {value!r} in family {self.family_id}"
            )
        return [item]
