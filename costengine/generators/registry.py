"""
Component generator registry.

A generator is a pure function from a resource's resolved configuration values
and its usage estimates to the ordered query components that make up its cost.
Generators register themselves under a resource type; unregistered types
produce no components and the resource is reported as skipped.
"""
from typing import Any, Callable, Dict, List, Optional
import importlib
import logging

from costengine.domain.query_models import QueryComponent, QueryResource
from costengine.domain.usage_models import UsageEstimates


logger = logging.getLogger(__name__)

ComponentGenerator = Callable[[Dict[str, Any], Dict[str, Any]], List[QueryComponent]]

# Resource type -> generator
GENERATORS: Dict[str, ComponentGenerator] = {}

# Modules whose import registers generators
GENERATOR_MODULES = (
    "costengine.generators.azurerm_virtual_network_gateway",
)


class GeneratorError(Exception):
    """Raised when a resource's values cannot be turned into components."""

    def __init__(self, address: str, message: str):
        super().__init__(f"{address}: {message}")
        self.address = address


def register(resource_type: str) -> Callable[[ComponentGenerator], ComponentGenerator]:
    """Decorator registering a generator for a resource type."""
    def decorator(func: ComponentGenerator) -> ComponentGenerator:
        if resource_type in GENERATORS:
            raise ValueError(f"A generator is already registered for {resource_type}")
        GENERATORS[resource_type] = func
        return func
    return decorator


def load_generators() -> None:
    """Import every built-in generator module (idempotent)."""
    for module_name in GENERATOR_MODULES:
        importlib.import_module(module_name)


def supported_types() -> List[str]:
    load_generators()
    return sorted(GENERATORS)


def get_generator(resource_type: str) -> Optional[ComponentGenerator]:
    load_generators()
    return GENERATORS.get(resource_type)


def generate_components(
    resource_type: str,
    values: Dict[str, Any],
    usage: Dict[str, Any]
) -> List[QueryComponent]:
    """
    Generate the query components of one resource.

    Returns:
        Ordered components, or an empty list for unsupported types
    """
    generator = get_generator(resource_type)
    if generator is None:
        logger.debug(f"No component generator for {resource_type}")
        return []
    return generator(values, usage)


def build_query_resources(
    resolved_resources: List[Dict[str, Any]],
    usage_estimates: Optional[UsageEstimates] = None
) -> List[QueryResource]:
    """
    Turn evaluator output into query resources.

    Args:
        resolved_resources: Dicts with 'address', 'type' and 'values'
        usage_estimates: Usage estimates (defaults to UsageEstimates.default())

    Returns:
        One QueryResource per input, in input order

    Raises:
        GeneratorError: If a resource is malformed or its values cannot be decoded
    """
    usage_estimates = usage_estimates or UsageEstimates.default()
    query_resources: List[QueryResource] = []

    for resolved in resolved_resources:
        address = resolved.get("address")
        resource_type = resolved.get("type")
        if not address or not resource_type:
            raise GeneratorError(str(address or "<unknown>"), "resource needs an address and a type")

        values = resolved.get("values") or {}
        usage = usage_estimates.for_resource(address, resource_type, values)
        try:
            components = generate_components(resource_type, values, usage)
        except ValueError as error:
            raise GeneratorError(address, str(error)) from error

        query_resources.append(QueryResource(
            address=address,
            type=resource_type,
            components=tuple(components),
        ))

    return query_resources
