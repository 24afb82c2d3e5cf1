from .catalog import Product, ProductAddon, Location
from .stock import LocationStock, VariantStock
from .ledger import MovementKind, StockTransaction, StockTransactionVariant
from .sales import Sale, SaleVariant
from .shrinkage import Shrinkage, ShrinkageVariant
from .expenses import Expense

__all__ = [
    'Product', 'ProductAddon', 'Location',
    'LocationStock', 'VariantStock',
    'MovementKind', 'StockTransaction', 'StockTransactionVariant',
    'Sale', 'SaleVariant',
    'Shrinkage', 'ShrinkageVariant',
    'Expense',
]
