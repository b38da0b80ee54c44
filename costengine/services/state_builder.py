"""
State builder service.
Prices query resources against a catalog and assembles a costed State.

The build is best-effort per component: a failed lookup is recorded on that
component and never discards sibling components or other resources. Only
systemic conditions (no catalog, expired deadline) fail the whole build.
"""
from typing import List, Optional, Tuple
import asyncio
import logging

from costengine.core.config import config
from costengine.domain.catalog_models import Price
from costengine.domain.cost_models import Component, State
from costengine.domain.query_models import QueryComponent, QueryResource
from costengine.pricing.catalog import Catalog


logger = logging.getLogger(__name__)


class ProductNotFoundError(Exception):
    """Recorded on a component when the catalog has no matching product."""

    def __init__(self, message: str = "product not found"):
        super().__init__(message)


class PriceNotFoundError(Exception):
    """Recorded on a component when the matched product has no matching price."""

    def __init__(self, message: str = "price not found"):
        super().__init__(message)


class BuildAbortError(Exception):
    """Raised when a build cannot start (e.g. no catalog)."""
    pass


class BuildCancelledError(Exception):
    """Raised when a build exceeds its deadline; no partial State is returned."""
    pass


def normalize(query: QueryComponent, price: Price) -> Component:
    """
    Turn a matched price into a resolved component on a monthly basis.

    An explicit monthly quantity wins; otherwise the component bills hourly and
    the hourly rate is scaled to a month. A monthly quantity of zero cannot be
    told apart from an absent one.
    """
    quantity = query.monthly_quantity
    rate = price.value
    if quantity == 0:
        quantity = query.hourly_quantity
        rate = rate * config.HOURS_PER_MONTH

    return Component(
        quantity=quantity,
        unit=query.unit,
        rate=rate,
        details=query.details,
        usage=query.usage,
    )


async def _resolve_component(
    query: QueryComponent,
    catalog: Catalog,
    semaphore: asyncio.Semaphore,
    address: str
) -> Component:
    """Resolve one query component; every lookup failure is recorded, not raised."""
    async with semaphore:
        try:
            products = await catalog.products.find_products(query.product_filter)
        except Exception as error:
            logger.warning(f"Product lookup failed for {address} / {query.name}: {error}")
            return Component.failed(error, unit=query.unit, usage=query.usage)

        if not products:
            logger.warning(f"No product found for {address} / {query.name}")
            return Component.failed(ProductNotFoundError(), unit=query.unit, usage=query.usage)

        try:
            prices = await catalog.prices.find_prices(products[0].id, query.price_filter)
        except Exception as error:
            logger.warning(f"Price lookup failed for {address} / {query.name}: {error}")
            return Component.failed(error, unit=query.unit, usage=query.usage)

    if not prices:
        logger.warning(f"No price found for {address} / {query.name} (product {products[0].id})")
        return Component.failed(PriceNotFoundError(), unit=query.unit, usage=query.usage)

    component = normalize(query, prices[0])
    logger.debug(
        "Priced %s / %s: %s x %s", address, query.name, component.quantity, component.rate
    )
    return component


async def _resolve_resource(
    resource: QueryResource,
    catalog: Catalog,
    semaphore: asyncio.Semaphore
) -> List[Tuple[str, Component]]:
    components = await asyncio.gather(*(
        _resolve_component(query, catalog, semaphore, resource.address)
        for query in resource.components
    ))
    return [(query.name, component) for query, component in zip(resource.components, components)]


async def _build(resources: List[QueryResource], catalog: Catalog, concurrency: int) -> State:
    semaphore = asyncio.Semaphore(concurrency)
    priced = [resource for resource in resources if resource.components]
    results = await asyncio.gather(*(
        _resolve_resource(resource, catalog, semaphore) for resource in priced
    ))

    # Merge after every worker finished, in input order, so builds are repeatable
    state = State()
    results_by_position = iter(results)
    for resource in resources:
        if not resource.components:
            state.mark_skipped(resource.address)
            continue
        for label, component in next(results_by_position):
            state.add_component(resource.address, label, component)
    return state


async def build_state(
    resources: List[QueryResource],
    catalog: Optional[Catalog],
    timeout: Optional[float] = None,
    concurrency: Optional[int] = None
) -> State:
    """
    Build a costed State from query resources.

    Args:
        resources: Query resources, each with its ordered query components
        catalog: Product and price repositories to match against
        timeout: Deadline in seconds (defaults to config; 0 disables it)
        concurrency: Maximum in-flight catalog lookups (defaults to config)

    Returns:
        State with one Resource per address

    Raises:
        BuildAbortError: If the catalog is missing
        BuildCancelledError: If the deadline expires before every lookup finished
    """
    if getattr(catalog, "products", None) is None or getattr(catalog, "prices", None) is None:
        raise BuildAbortError("a catalog with product and price repositories is required")

    if timeout is None:
        timeout = config.BUILD_TIMEOUT_SECONDS
    concurrency = concurrency or config.BUILD_CONCURRENCY

    try:
        if timeout:
            state = await asyncio.wait_for(_build(resources, catalog, concurrency), timeout)
        else:
            state = await _build(resources, catalog, concurrency)
    except asyncio.TimeoutError as error:
        logger.error(f"State build cancelled after {timeout}s ({len(resources)} resources)")
        raise BuildCancelledError(f"state build exceeded its {timeout}s deadline") from error

    skipped = sum(1 for resource in state.resources.values() if resource.skipped)
    errors = sum(len(resource.errors()) for resource in state.resources.values())
    logger.info(
        "Built state: %d resources, %d skipped, %d unresolved components",
        len(state.resources), skipped, errors
    )
    return state
