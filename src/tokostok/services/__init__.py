from .ledger import StockLedger
from .webhook_client import WebhookClient
from .stock_service import StockService
from .sales_service import SalesService
from .purchase_service import PurchaseService

__all__ = [
    "StockLedger",
    "WebhookClient",
    "StockService",
    "SalesService",
    "PurchaseService",
]
