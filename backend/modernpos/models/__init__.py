from .tenancy import Business, Employee
from .inventory import Product
from .settings import BusinessSetting
from .sales import Sale, SaleLine
from .state import SessionState

__all__ = [
    'Business', 'Employee',
    'Product',
    'BusinessSetting',
    'Sale', 'SaleLine',
    'SessionState',
]
