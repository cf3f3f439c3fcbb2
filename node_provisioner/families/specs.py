"""
Server Family Definitions
=========================

Per-family configuration for the shared enumerator, selector and state
machine. Each supported package is described by one ``FamilySpec``:
its required catalog categories, CPU rule, disk naming, standard
extras and stage timeouts. Adding a family means adding a spec here.

Supported packages:
- 46: virtual guests
- 50: bare metal instances
- 23: single Xeon 3200 series servers
- 142: single Xeon 2000 series servers
- 42: dual Xeon 5500 series servers
- 44: dual Xeon 5500 series servers with multiple disks
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from ..catalog.profiles import (
    BareMetalCpuRule,
    CapacityCpuRule,
    CategorySlot,
    FixedCpuRule,
    HardwareIdStrategy,
    ProfileRules,
    parse_id_list,
)
from ..config import STAGE_NAMES, ProvisionerConfig
from ..provisioning.orders import OrderDefaults
from ..provisioning.polling import StagePolicy
from ..provisioning.state_machine import StagePolicies
from ..providers.base import NodeKind

HOUR = 60 * 60

VIRTUAL_GUEST_PACKAGE_ID = 46
BARE_METAL_PACKAGE_ID = 50
SINGLE_XEON_3200_PACKAGE_ID = 23
SINGLE_XEON_2000_PACKAGE_ID = 142
DUAL_XEON_5500_PACKAGE_ID = 42
DUAL_XEON_5500_MULTI_DISK_PACKAGE_ID = 44

# IP address, monitoring, notifications, bandwidth, remote console,
# vulnerability scanner and VPN management.
STANDARD_GUEST_PRICES = (21, 55, 57, 58, 1800, 905, 418, 420)
STANDARD_XEON_2000_PRICES = (15, 49, 51, 52, 504, 11, 307, 309)

# Same services on the older server packages, listed by item id.
STANDARD_XEON_3200_ITEMS = (15, 49, 51, 52, 504, 487, 307, 309)
STANDARD_DUAL_XEON_ITEMS = (15, 49, 51, 52, 504, 307, 309)


@dataclass(frozen=True)
class FamilySpec:
    """Everything that distinguishes one server family from another."""
    family_id: int
    name: str
    kind: NodeKind
    rules: ProfileRules
    policies: StagePolicies
    extra_price_ids: Tuple[int, ...] = ()
    extra_item_ids: Tuple[int, ...] = ()
    use_hourly_pricing: bool = True
    requires_order_approval: bool = True
    supports_suspend: bool = False
    supports_power_off: bool = False

    @property
    def order_defaults(self) -> OrderDefaults:
        return OrderDefaults(
            family_id=self.family_id,
            kind=self.kind,
            extra_price_ids=self.extra_price_ids,
            extra_item_ids=self.extra_item_ids,
            use_hourly_pricing=self.use_hourly_pricing,
        )


def _policies(hours: float, approval_hours: float, interval: float, max_interval: float,
              login_hours: Optional[float] = None) -> StagePolicies:
    def policy(timeout_hours: float) -> StagePolicy:
        return StagePolicy(timeout=timeout_hours * HOUR, interval=interval, max_interval=max_interval)

    return StagePolicies(
        order_approved=policy(approval_hours),
        transactions_started=policy(hours),
        transactions_ended=policy(hours),
        login_ready=policy(login_hours if login_hours is not None else hours),
    )


def _server_slots(bandwidth: bool = True) -> Tuple[CategorySlot, ...]:
    slots = [
        CategorySlot("cpu", category="server"),
        CategorySlot("ram", category="ram"),
        CategorySlot("disk0", category="disk0"),
        CategorySlot("uplink", category="port_speed"),
    ]
    if bandwidth:
        slots.append(CategorySlot("bandwidth", category="bandwidth"))
    return tuple(slots)


# =========================================
# FAMILIES
# =========================================

def virtual_guest(config: ProvisionerConfig) -> FamilySpec:
    disk0_pattern = None
    if config.disk0_type:
        disk0_pattern = f".*{config.disk0_type}.*|.*SAN.*"

    return FamilySpec(
        family_id=VIRTUAL_GUEST_PACKAGE_ID,
        name="virtual guest",
        kind=NodeKind.VIRTUAL_GUEST,
        rules=ProfileRules(
            slots=(
                CategorySlot("cpu", description_pattern=config.cpu_regex),
                CategorySlot("ram", category="ram"),
                CategorySlot("disk0", category="guest_disk0", description_pattern=disk0_pattern),
                CategorySlot("uplink", category="port_speed"),
                CategorySlot("bandwidth", category="bandwidth", optional=True),
            ),
            cpu_rule=CapacityCpuRule(),
            boot_disk_category="guest_disk0",
            disk_category_pattern="guest_disk[0-9]",
            hardware_id_strategy=HardwareIdStrategy.MULTI,
            extra_disk_category_pattern="guest_disk[1-5]",
            extra_disk_ids=parse_id_list(config.external_disk_ids),
        ),
        policies=_policies(hours=1, approval_hours=1, interval=0.1, max_interval=1.0),
        extra_price_ids=STANDARD_GUEST_PRICES,
        requires_order_approval=False,
        supports_suspend=True,
        supports_power_off=True,
    )


def bare_metal(config: ProvisionerConfig) -> FamilySpec:
    return FamilySpec(
        family_id=BARE_METAL_PACKAGE_ID,
        name="bare metal instance",
        kind=NodeKind.HARDWARE_SERVER,
        rules=ProfileRules(
            slots=(
                CategorySlot("cpu", category="server_core"),
                CategorySlot("disk0", category="disk0"),
                CategorySlot("uplink", category="port_speed"),
            ),
            cpu_rule=BareMetalCpuRule(),
            ram_from_cpu=True,
            boot_disk_category="disk0",
            disk_category_pattern="disk[0-9]+",
        ),
        policies=_policies(hours=10, approval_hours=10, interval=5, max_interval=10),
        extra_price_ids=STANDARD_GUEST_PRICES,
    )


def single_xeon_3200(config: ProvisionerConfig) -> FamilySpec:
    return FamilySpec(
        family_id=SINGLE_XEON_3200_PACKAGE_ID,
        name="single Xeon 3200 series",
        kind=NodeKind.HARDWARE_SERVER,
        rules=ProfileRules(
            slots=_server_slots(),
            cpu_rule=FixedCpuRule(cores=4, speed=2.6),
            boot_disk_category="disk0",
            disk_category_pattern="disk[0-9]+",
        ),
        policies=_policies(hours=10, approval_hours=10, interval=5, max_interval=10),
        extra_item_ids=STANDARD_XEON_3200_ITEMS,
    )


def single_xeon_2000(config: ProvisionerConfig) -> FamilySpec:
    return replace(
        single_xeon_3200(config),
        family_id=SINGLE_XEON_2000_PACKAGE_ID,
        name="single Xeon 2000 series",
        extra_price_ids=STANDARD_XEON_2000_PRICES,
        extra_item_ids=(),
    )


def dual_xeon_5500(config: ProvisionerConfig) -> FamilySpec:
    return FamilySpec(
        family_id=DUAL_XEON_5500_PACKAGE_ID,
        name="dual Xeon 5500 series",
        kind=NodeKind.HARDWARE_SERVER,
        rules=ProfileRules(
            slots=_server_slots(),
            cpu_rule=FixedCpuRule(cores=8, speed=2.4),
            boot_disk_category="disk0",
            disk_category_pattern="disk[0-9]+",
            extra_disk_category_pattern="disk([1-9]|1[01])",
            extra_disk_ids=parse_id_list(config.external_disk_ids),
            disk_controller_category="disk_controller",
            disk_controller_id=config.disk_controller_id,
        ),
        policies=_policies(hours=50, approval_hours=50, interval=5, max_interval=10, login_hours=10),
        extra_item_ids=STANDARD_DUAL_XEON_ITEMS,
        use_hourly_pricing=False,
    )


def dual_xeon_5500_multi_disk(config: ProvisionerConfig) -> FamilySpec:
    spec = dual_xeon_5500(config)
    return replace(
        spec,
        family_id=DUAL_XEON_5500_MULTI_DISK_PACKAGE_ID,
        name="dual Xeon 5500 series, multiple disks",
        rules=replace(spec.rules, hardware_id_strategy=HardwareIdStrategy.MULTI),
    )


FAMILY_BUILDERS = (
    virtual_guest,
    bare_metal,
    single_xeon_3200,
    single_xeon_2000,
    dual_xeon_5500,
    dual_xeon_5500_multi_disk,
)


# =========================================
# CONFIG OVERRIDES
# =========================================

def _override_policy(policy: StagePolicy, timeout: Optional[float], interval: Optional[float]) -> StagePolicy:
    if timeout is None and interval is None:
        return policy
    interval = interval if interval is not None else policy.interval
    max_interval = policy.max_interval
    if max_interval is not None and max_interval < interval:
        max_interval = interval
    return replace(
        policy,
        timeout=timeout if timeout is not None else policy.timeout,
        interval=interval,
        max_interval=max_interval,
    )


def apply_config(spec: FamilySpec, config: ProvisionerConfig) -> FamilySpec:
    """Apply stage, pricing and power-off overrides from configuration."""
    overrides = {}
    for stage in STAGE_NAMES:
        attribute = stage.lower()
        overrides[attribute] = _override_policy(
            getattr(spec.policies, attribute),
            config.stage_timeouts.get(stage),
            config.stage_intervals.get(stage),
        )

    hourly = spec.use_hourly_pricing
    if config.use_hourly_pricing is not None:
        hourly = config.use_hourly_pricing

    return replace(
        spec,
        policies=replace(spec.policies, **overrides),
        use_hourly_pricing=hourly,
    )


def build_family_specs(config: Optional[ProvisionerConfig] = None) -> List[FamilySpec]:
    """
    Build every supported family's spec.

    Raises:
        ConfigurationError: If configured regexes or ids are malformed
    """
    config = config or ProvisionerConfig()
    return [apply_config(builder(config), config) for builder in FAMILY_BUILDERS]
