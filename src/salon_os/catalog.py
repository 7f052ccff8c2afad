"""
catalog.py

Product and service catalog for the salon:
- products: container capacity, minimum stock threshold, opening stock
- services: default product volumes each service uses

Loaded from YAML, e.g.

    products:
      shampoo_premium:
        name: Shampoing Premium
        capacity_ml: 1000
        min_threshold_ml: 200
        initial_sealed: 3
    services:
      coloration:
        name: Coloration
        products:
          shampoo_premium: 30
          color_cream: 60

The catalog turns a checkout's service selection (plus any user-adjusted
quantities) into SaleLine objects for the sale coordinator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import yaml

from salon_os.stock.exceptions import ValidationError, UnknownProductError
from salon_os.stock.records import RestockBatch, to_count, to_ml
from salon_os.stock.sale import ProductRequirement, SaleLine

logger = logging.getLogger(__name__)


@dataclass
class ProductSpec:
    product_id: str
    name: str
    capacity_ml: Decimal
    min_threshold_ml: Decimal
    initial_sealed: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ServiceSpec:
    service_id: str
    name: str
    products: Dict[str, Decimal] = field(default_factory=dict)  # product_id -> default ml


class UnknownServiceError(ValidationError, KeyError):
    def __init__(self, service_id: str):
        self.service_id = service_id
        super().__init__(f"Unknown service: {service_id}")

    def __str__(self) -> str:
        return self.args[0]


class Catalog:
    """Products and services known to the salon."""

    def __init__(
        self,
        products: Optional[Mapping[str, ProductSpec]] = None,
        services: Optional[Mapping[str, ServiceSpec]] = None,
    ):
        self.products: Dict[str, ProductSpec] = dict(products or {})
        self.services: Dict[str, ServiceSpec] = dict(services or {})

    # -----------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Catalog":
        known_keys = {'name', 'capacity_ml', 'min_threshold_ml', 'initial_sealed'}

        products: Dict[str, ProductSpec] = {}
        for product_id, d in (data.get('products') or {}).items():
            d = d or {}
            if 'capacity_ml' not in d:
                raise ValidationError(f"Product {product_id} has no capacity_ml")
            products[product_id] = ProductSpec(
                product_id=product_id,
                name=d.get('name', product_id),
                capacity_ml=to_ml(d['capacity_ml'], f"capacity_ml of {product_id}"),
                min_threshold_ml=to_ml(d.get('min_threshold_ml', 0), f"min_threshold_ml of {product_id}"),
                initial_sealed=to_count(d.get('initial_sealed', 0), f"initial_sealed of {product_id}"),
                extra={k: v for k, v in d.items() if k not in known_keys},
            )

        services: Dict[str, ServiceSpec] = {}
        for service_id, d in (data.get('services') or {}).items():
            d = d or {}
            usage = {}
            for product_id, ml in (d.get('products') or {}).items():
                if product_id not in products:
                    raise UnknownProductError(product_id)
                usage[product_id] = to_ml(ml, f"ml of {product_id} in {service_id}")
            services[service_id] = ServiceSpec(
                service_id=service_id,
                name=d.get('name', service_id),
                products=usage,
            )

        return cls(products, services)

    @classmethod
    def from_yaml(cls, path: str) -> "Catalog":
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        catalog = cls.from_dict(data)
        logger.info(f"Loaded catalog from {path}: {len(catalog.products)} products, {len(catalog.services)} services")
        return catalog

    # -----------------------------------------------------------------
    # Use
    # -----------------------------------------------------------------

    def service(self, service_id: str) -> ServiceSpec:
        if service_id not in self.services:
            raise UnknownServiceError(service_id)
        return self.services[service_id]

    def requirements(self, service_id: str) -> List[ProductRequirement]:
        """Default product volumes for a service, skipping zero defaults."""
        return [
            ProductRequirement(pid, ml)
            for pid, ml in self.service(service_id).products.items()
            if ml > 0
        ]

    def sale_line(self, service_id: str, overrides: Optional[Mapping[str, Any]] = None) -> SaleLine:
        """
        Build a sale line from a service's defaults.

        Parameters
        ----------
        service_id : str
            Service being sold
        overrides : Mapping[str, Any], optional
            User-adjusted ml per product. An override of 0 drops the product
            from the line; products the service does not list are added.
        """
        usage = dict(self.service(service_id).products)
        for product_id, ml in (overrides or {}).items():
            if product_id not in self.products:
                raise UnknownProductError(product_id)
            usage[product_id] = to_ml(ml, f"ml of {product_id}")

        requirements = []
        for product_id, ml in usage.items():
            if ml < 0:
                raise ValidationError(f"ml of {product_id} in {service_id} must not be negative, got {ml}")
            if ml > 0:
                requirements.append(ProductRequirement(product_id, ml))
        return SaleLine(service_id=service_id, requirements=tuple(requirements))

    def seed(self, manager) -> None:
        """Register every product with an InventoryManager and book its opening stock.

        Products that already have a record are left as they are.
        """
        for spec in self.products.values():
            existed = manager.repository.get(spec.product_id) is not None
            manager.register_product(
                spec.product_id,
                spec.capacity_ml,
                spec.min_threshold_ml,
                name=spec.name,
            )
            if not existed and spec.initial_sealed > 0:
                manager.restock(RestockBatch(
                    product_id=spec.product_id,
                    containers_added=spec.initial_sealed,
                    notes="opening stock",
                ))


def load_catalog(path: Optional[str] = None) -> Catalog:
    """Load the catalog at ``path``, or at the configured catalog path."""
    if path is None:
        from salon_os.config.settings import settings
        path = settings.catalog_path
    return Catalog.from_yaml(path)
