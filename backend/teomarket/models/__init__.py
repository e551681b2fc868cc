from .geography import Country, State, City, VatRate, Currency
from .customers import CustomerGroup, Customer, Address
from .auth import User, SessionToken, ROLE_CUSTOMER, ROLE_MANAGER, ROLE_ADMIN, ROLES
from .catalog import (
    Product, ProductFamily, Attribute, AttributeValue,
    ProductAttributeValue, ProductGroupPrice,
)
from .shipping import ShippingMethod, ShippingMethodConfig
from .orders import PaymentMethod, Order, OrderProduct, OrderAddress, OrderShipping, OrderHistory
from .returns import ProductReturn

__all__ = [
    'Country', 'State', 'City', 'VatRate', 'Currency',
    'CustomerGroup', 'Customer', 'Address',
    'User', 'SessionToken', 'ROLE_CUSTOMER', 'ROLE_MANAGER', 'ROLE_ADMIN', 'ROLES',
    'Product', 'ProductFamily', 'Attribute', 'AttributeValue',
    'ProductAttributeValue', 'ProductGroupPrice',
    'ShippingMethod', 'ShippingMethodConfig',
    'PaymentMethod', 'Order', 'OrderProduct', 'OrderAddress', 'OrderShipping', 'OrderHistory',
    'ProductReturn',
]
