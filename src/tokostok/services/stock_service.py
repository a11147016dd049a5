from __future__ import annotations

import logging
from typing import Iterable, Optional

from tokostok.domain.errors import ApiError, ConfigurationError, EmptyResponseError, NotFoundError
from tokostok.domain.models import StockItem, StockSummary, VariantStock
from tokostok.domain.policies import default_sale_price
from tokostok.services.ledger import StockLedger
from tokostok.services.normalization import normalize_stock
from tokostok.services.validation import sanitize_number, sanitize_string, split_colors, validate_stock_edit
from tokostok.services.webhook_client import WebhookClient

log = logging.getLogger("tokostok.stock")

READ_ACTION = {"action": "read"}


def _variants(colors: list[str], qty: float) -> tuple[VariantStock, ...]:
    return tuple(VariantStock(name=c, qty=qty) for c in colors)


class StockService:
    """Dashboard: loads stock from the webhook into the ledger and edits it locally."""

    def __init__(self, ledger: StockLedger, client: WebhookClient, endpoint: Optional[str], timeout: float | None = None):
        self.ledger = ledger
        self.client = client
        self.endpoint = endpoint
        self.timeout = timeout

    def refresh(self) -> list[StockItem]:
        """GET first; POST ``{action: read}`` only when GET gives no usable rows."""
        if not self.endpoint:
            raise ConfigurationError("Stock webhook endpoint is not configured.")

        items: list[StockItem] = []
        try:
            items = normalize_stock(self.client.get(self.endpoint, timeout=self.timeout))
        except ApiError as e:
            log.warning("stock_get_failed fallback=post error=%s", e)

        if not items:
            items = normalize_stock(self.client.post(self.endpoint, READ_ACTION, timeout=self.timeout))

        if not items:
            raise EmptyResponseError("Stock data from the webhook is empty.")

        self.ledger.set_items(items)
        log.info("stock_loaded items=%s", len(items))
        return items

    def list_items(self) -> tuple[StockItem, ...]:
        return self.ledger.items

    def summary(self) -> StockSummary:
        return self.ledger.summary()

    def add_item(
        self,
        kode: str,
        nama: str,
        qty: float,
        harga_beli: float,
        harga_jual: float | None = None,
        warna: str = "",
    ) -> StockItem:
        validate_stock_edit(kode, nama, qty, harga_beli, 0 if harga_jual is None else harga_jual)
        qty = sanitize_number(qty)
        harga_beli = sanitize_number(harga_beli)
        colors = split_colors(warna)
        item = StockItem(
            id="",
            kode=sanitize_string(kode),
            nama=sanitize_string(nama),
            qty=qty,
            harga_beli=harga_beli,
            harga_jual=default_sale_price(harga_beli) if harga_jual is None else sanitize_number(harga_jual),
            warna=tuple(colors),
            variant_stock=_variants(colors, qty),
        )
        return self.ledger.add_item(item)

    def edit_item(self, item_id: str, nama: str, qty: float, harga_beli: float, harga_jual: float, warna: str) -> StockItem:
        current = self.ledger.get(item_id)
        if current is None:
            raise NotFoundError("Item not found.")
        validate_stock_edit(current.kode, nama, qty, harga_beli, harga_jual)
        qty = sanitize_number(qty)
        colors = split_colors(warna)
        self.ledger.update_item(
            item_id,
            nama=sanitize_string(nama),
            qty=qty,
            harga_beli=sanitize_number(harga_beli),
            harga_jual=sanitize_number(harga_jual),
            warna=tuple(colors),
            variant_stock=_variants(colors, qty),
        )
        return self.ledger.get(item_id)

    def update_price(self, item_id: str, harga_beli: float, harga_jual: float) -> None:
        current = self.ledger.get(item_id)
        if current is None:
            raise NotFoundError("Item not found.")
        validate_stock_edit(current.kode, current.nama, current.qty, harga_beli, harga_jual)
        self.ledger.update_price(item_id, sanitize_number(harga_beli), sanitize_number(harga_jual))

    def remove_items(self, item_ids: Iterable[str]) -> None:
        for item_id in list(item_ids):
            self.ledger.remove_item(item_id)
