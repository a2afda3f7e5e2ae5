from .inventory import StockItem, AuditRecord
from .settings import Setting
from .carts import Cart, CartLine, PendingPayment, SavedCart
from .ledger import Transaction, TransactionLine

__all__ = [
    'StockItem', 'AuditRecord',
    'Setting',
    'Cart', 'CartLine', 'PendingPayment', 'SavedCart',
    'Transaction', 'TransactionLine',
]
