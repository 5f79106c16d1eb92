from .auth import User, SessionToken
from .inventory import Ingredient, Supplier, InventoryLot, StockMovement, Purchase, PurchaseItem
from .products import Product, RecipeItem
from .sales import Sale, SaleItem
from .cash_sessions import CashSession, SessionInventorySnapshot
from .expenses import Expense

__all__ = [
    'User', 'SessionToken',
    'Ingredient', 'Supplier', 'InventoryLot', 'StockMovement', 'Purchase', 'PurchaseItem',
    'Product', 'RecipeItem',
    'Sale', 'SaleItem',
    'CashSession', 'SessionInventorySnapshot',
    'Expense',
]
