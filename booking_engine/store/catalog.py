"""
Store and service catalog.

The engine only reads from the catalog; services are created and edited
by store-management tooling elsewhere. ``InMemoryCatalogStore`` ships a
demo catalog for the console demo and tests. In production this would be
backed by the marketplace's store service.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from booking_engine.schemas.booking_schema import Service
from booking_engine.schemas.store_schema import Store

logger = logging.getLogger(__name__)

_CATALOG_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)

DEFAULT_STORES: list[Store] = [
    Store(id="store-luna-living", name="Luna Living", booking_enabled=True),
    Store(id="store-urban-threads", name="Urban Threads", booking_enabled=False),
]

DEFAULT_SERVICES: list[Service] = [
    Service(
        id="service-luna-consultation",
        store_id="store-luna-living",
        name="Interior Design Consultation",
        description="One-on-one consultation with our interior design expert",
        duration_minutes=60,
        buffer_before_minutes=15,
        buffer_after_minutes=15,
        capacity=1,
        price="$75",
        created_at=_CATALOG_EPOCH,
        updated_at=_CATALOG_EPOCH,
    ),
    Service(
        id="service-luna-workshop",
        store_id="store-luna-living",
        name="DIY Home Decor Workshop",
        description="Group workshop for creating minimalist home decor",
        duration_minutes=120,
        buffer_before_minutes=30,
        buffer_after_minutes=30,
        capacity=6,
        price="$45",
        created_at=_CATALOG_EPOCH,
        updated_at=_CATALOG_EPOCH,
    ),
    Service(
        id="service-luna-custom-order",
        store_id="store-luna-living",
        name="Custom Furniture Design",
        description="Discuss custom furniture pieces for your space",
        duration_minutes=90,
        buffer_before_minutes=15,
        buffer_after_minutes=15,
        capacity=1,
        price="$100",
        created_at=_CATALOG_EPOCH,
        updated_at=_CATALOG_EPOCH,
    ),
]


class CatalogStore(Protocol):
    """Read-only catalog interface consumed by the engine."""

    def get_store(self, store_id: str) -> Optional[Store]: ...

    def is_booking_enabled(self, store_id: str) -> bool: ...

    def get_service(self, service_id: str) -> Optional[Service]: ...

    def list_services(self, store_id: str) -> list[Service]: ...


class InMemoryCatalogStore:
    """Dict-backed catalog. Returned models are copies."""

    def __init__(
        self,
        stores: Optional[Iterable[Store]] = None,
        services: Optional[Iterable[Service]] = None,
    ) -> None:
        self._stores: dict[str, Store] = {
            s.id: s.model_copy() for s in (DEFAULT_STORES if stores is None else stores)
        }
        self._services: dict[str, Service] = {
            s.id: s.model_copy()
            for s in (DEFAULT_SERVICES if services is None else services)
        }
        logger.debug(
            "Catalog loaded: %d store(s), %d service(s)",
            len(self._stores), len(self._services),
        )

    def get_store(self, store_id: str) -> Optional[Store]:
        store = self._stores.get(store_id)
        return store.model_copy() if store else None

    def is_booking_enabled(self, store_id: str) -> bool:
        store = self._stores.get(store_id)
        return bool(store and store.booking_enabled)

    def get_service(self, service_id: str) -> Optional[Service]:
        service = self._services.get(service_id)
        return service.model_copy() if service else None

    def list_services(self, store_id: str) -> list[Service]:
        """Return every service of a store, active or not."""
        return [s.model_copy() for s in self._services.values() if s.store_id == store_id]

    def upsert_service(self, service: Service) -> None:
        """Add or replace a service. Used by store tooling and test fixtures."""
        self._services[service.id] = service.model_copy()

    def upsert_store(self, store: Store) -> None:
        self._stores[store.id] = store.model_copy()
