from .catalog import Product, Material, ProductionMaterial, PriceHistory, CategoryPrice
from .customers import Customer
from .sales import Sale, SaleItem, Order, OrderItem
from .finance import Expense, InstallmentPayment, InstallmentPaymentStatus
from .settings import Setting

__all__ = [
    'Product', 'Material', 'ProductionMaterial', 'PriceHistory', 'CategoryPrice',
    'Customer',
    'Sale', 'SaleItem', 'Order', 'OrderItem',
    'Expense', 'InstallmentPayment', 'InstallmentPaymentStatus',
    'Setting',
]
