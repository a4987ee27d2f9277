from .catalog import Product, StockStats
from .inventory import StockMovement
from .sales import Order, OrderItem
from .returns import Return, ReturnItem
from .credits import DiscountCode
from .accounts import AccountEntry

__all__ = [
    'Product', 'StockStats',
    'StockMovement',
    'Order', 'OrderItem',
    'Return', 'ReturnItem',
    'DiscountCode',
    'AccountEntry',
]
