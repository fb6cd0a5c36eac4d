from inventory_api.services.auth_service import AuthService
from inventory_api.services.inventory_service import InventoryService
from inventory_api.services.mutation_gateway import UnitMutationGateway
from inventory_api.services.sales_feed import SalesFeedClient, SalesFeedService
from inventory_api.services.unit_store import UnitStore

__all__ = [
    "AuthService",
    "InventoryService",
    "UnitMutationGateway",
    "SalesFeedClient",
    "SalesFeedService",
    "UnitStore",
]
