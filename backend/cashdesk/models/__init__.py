from .catalog import Product
from .shifts import Shift, CashDrawerTransaction
from .orders import Order, OrderItem

__all__ = [
    'Product',
    'Shift', 'CashDrawerTransaction',
    'Order', 'OrderItem',
]
