from .tenancy import Organization, InviteCode
from .auth import User, SessionToken
from .security import SecurityEvent
from .settings import OrganizationSetting
from .catalog import Provider, Product
from .inventory import StockTransaction
from .orders import Order, OrderLine, ORDER_STATUSES, LINE_STATUSES

__all__ = [
    'Organization', 'InviteCode',
    'User', 'SessionToken', 'SecurityEvent',
    'OrganizationSetting',
    'Provider', 'Product', 'StockTransaction',
    'Order', 'OrderLine', 'ORDER_STATUSES', 'LINE_STATUSES',
]
