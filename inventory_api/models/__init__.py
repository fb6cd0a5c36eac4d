from inventory_api.models.user import User
from inventory_api.models.unit import Unit

__all__ = [
    "User",
    "Unit",
]
