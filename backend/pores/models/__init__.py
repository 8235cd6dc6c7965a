from .tenancy import Store, Worker
from .inventory import Product, Restock
from .sales import Sale, SaleItem
from .credits import Credit, CreditPayment
from .catalog import StoreTypeDef, CatalogItem

__all__ = [
    'Store', 'Worker',
    'Product', 'Restock',
    'Sale', 'SaleItem',
    'Credit', 'CreditPayment',
    'StoreTypeDef', 'CatalogItem',
]
