from .catalog import Category, Product, ProductType
from .customers import Customer
from .sales import Sale, Payment
from .settings import CompanyProfile

__all__ = [
    'Category', 'Product', 'ProductType',
    'Customer',
    'Sale', 'Payment',
    'CompanyProfile',
]
