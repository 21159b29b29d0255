from .auth_service import AuthService
from .catalog_service import CategoryService, ProductService
from .client_service import ClientService
from .delivery_service import DeliveryService
from .order_service import OrderService
from .pricing_service import PricingService
from .user_service import UserService

__all__ = [
    "AuthService",
    "CategoryService",
    "ProductService",
    "ClientService",
    "DeliveryService",
    "OrderService",
    "PricingService",
    "UserService",
]
