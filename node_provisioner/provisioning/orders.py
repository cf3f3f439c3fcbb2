"""
Order Templates
===============

What a caller asks for (``OrderTemplate``) and how it becomes a concrete
``Order`` once a price combination has been chosen.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..catalog.index import CatalogIndex
from ..catalog.prices import parse_price_ids
from ..errors import CatalogResolutionError, ConfigurationError
from ..providers.base import NodeDescriptor, NodeKind, Order


@dataclass
class OrderTemplate:
    """
    A caller's node request.

    ``hardware_id`` is a hardware profile id: either a single comma-joined
    price template or several candidates joined with ``;``. The OS is
    given either as an OS price id (``image_price_id``) or as an image
    template; an image template takes precedence.
    """
    hostname: str
    domain: str
    hardware_id: str
    location: Optional[str] = None
    image_price_id: Optional[int] = None
    image_template_id: Optional[int] = None
    image_template_global_identifier: Optional[str] = None
    quantity: int = 1
    use_hourly_pricing: Optional[bool] = None
    private_network_only: bool = False
    post_install_script_uri: Optional[str] = None
    existing_node_id: Optional[int] = None

    @property
    def uses_image_template(self) -> bool:
        return self.image_template_id is not None or bool(self.image_template_global_identifier)


@dataclass(frozen=True)
class OrderDefaults:
    """
    Family-level order settings.

    Standard extras (IP address, monitoring, VPN ...) are given either as
    price ids or as catalog item ids; item ids are ordered at their first
    listed price.
    """
    family_id: int
    kind: NodeKind
    extra_price_ids: Tuple[int, ...] = ()
    extra_item_ids: Tuple[int, ...] = ()
    use_hourly_pricing: bool = False


def extra_prices(defaults: OrderDefaults, catalog: Optional[CatalogIndex] = None) -> List[int]:
    """
    Price ids of a family's standard extras.

    Raises:
        ConfigurationError: If item ids are configured but no catalog is given
        CatalogResolutionError: If a configured item is not in the catalog
    """
    prices = list(defaults.extra_price_ids)
    if not defaults.extra_item_ids:
        return prices
    if catalog is None:
        raise ConfigurationError(
            f"Family {defaults.family_id} orders extras by item id and needs its catalog"
        )
    for item_id in defaults.extra_item_ids:
        item = catalog.item_with_id(item_id)
        if item is None:
            raise CatalogResolutionError(f"Could not find standard item {item_id} in family {defaults.family_id}")
        prices.append(item.first_price.id)
    return prices


def build_order(
    template: OrderTemplate,
    defaults: OrderDefaults,
    combination: str,
    catalog: Optional[CatalogIndex] = None,
) -> Order:
    """
    Build the order for one candidate price combination.

    Prices are the OS price (unless an image template is used), the
    candidate's hardware prices, then the family's standard extras.
    """
    prices = []
    if template.image_price_id is not None and not template.uses_image_template:
        prices.append(template.image_price_id)
    prices.extend(parse_price_ids(combination))
    prices.extend(extra_prices(defaults, catalog))

    if template.existing_node_id is not None:
        node = NodeDescriptor(id=template.existing_node_id)
    else:
        node = NodeDescriptor(hostname=template.hostname, domain=template.domain)

    hourly = template.use_hourly_pricing
    if hourly is None:
        hourly = defaults.use_hourly_pricing

    return Order(
        family_id=defaults.family_id,
        location=template.location,
        prices=prices,
        nodes=[node],
        kind=defaults.kind,
        quantity=template.quantity,
        use_hourly_pricing=hourly,
        image_template_id=template.image_template_id,
        image_template_global_identifier=template.image_template_global_identifier,
        provision_scripts=[template.post_install_script_uri] if template.post_install_script_uri else [],
    )
