from __future__ import annotations

from dataclasses import dataclass

import requests

from tokostok.config import Settings
from tokostok.services.ledger import StockLedger
from tokostok.services.purchase_service import PurchaseService
from tokostok.services.sales_service import SalesService
from tokostok.services.stock_service import StockService
from tokostok.services.webhook_client import WebhookClient


@dataclass(frozen=True)
class AppContainer:
    settings: Settings
    ledger: StockLedger
    client: WebhookClient
    stock: StockService
    sales: SalesService
    purchases: PurchaseService


def build_container(settings: Settings, session: requests.Session | None = None) -> AppContainer:
    """One ledger per application root, shared by every controller."""
    ledger = StockLedger()
    client = WebhookClient(session=session, timeout=settings.request_timeout, debug=settings.debug)

    stock = StockService(ledger, client, settings.stock_endpoint)
    sales = SalesService(
        ledger,
        client,
        settings.sales_endpoint,
        history_endpoint=settings.sales_history_endpoint,
        history_timeout=settings.history_timeout,
    )
    purchases = PurchaseService(
        ledger,
        client,
        settings.purchases_endpoint,
        history_endpoint=settings.purchase_history_endpoint,
        history_timeout=settings.history_timeout,
    )

    return AppContainer(
        settings=settings,
        ledger=ledger,
        client=client,
        stock=stock,
        sales=sales,
        purchases=purchases,
    )
