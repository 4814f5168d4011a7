# furnishop/models/__init__.py
from .catalog import *           # Item, MaterialOption
from .cart import *              # CartLine
from .order import *             # Order, OrderItem
from .order_status_log import *  # OrderStatusLog
from .stock_audit import *       # StockAudit
