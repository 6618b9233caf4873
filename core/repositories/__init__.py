"""
Repository mixins for the DuckDB store.

DuckDBStore is composed of focused mixins:
- OrderStreamsMixin: canonical count / group / sum per order stream
- ShipmentsMixin: shipment rollups by courier
- BanksMixin: bank lookups
- CatalogMixin: products, vendors and purchase orders

OrderRepositoryFacade sits on top of a store and applies the stream selector.
"""
from core.repositories.orders import OrderStreamsMixin, Agg, STREAM_ADAPTERS
from core.repositories.shipments import ShipmentsMixin
from core.repositories.banks import BanksMixin
from core.repositories.catalog import CatalogMixin
from core.repositories.facade import OrderRepositoryFacade, merge_groups

__all__ = [
    "OrderStreamsMixin",
    "ShipmentsMixin",
    "BanksMixin",
    "CatalogMixin",
    "OrderRepositoryFacade",
    "Agg",
    "STREAM_ADAPTERS",
    "merge_groups",
]
