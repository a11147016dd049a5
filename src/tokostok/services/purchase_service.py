from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from tokostok.domain.errors import ConfigurationError, EmptyResponseError, SubmitInProgressError
from tokostok.domain.models import PurchaseItem, PurchaseTransaction
from tokostok.domain.policies import HISTORY_LIMIT
from tokostok.services.id_generator import generate_purchase_id
from tokostok.services.ledger import StockLedger
from tokostok.services.normalization import normalize_purchase_history, utc_now_iso
from tokostok.services.validation import sanitize_string, validate_purchase
from tokostok.services.webhook_client import WebhookClient, server_message

log = logging.getLogger("tokostok.purchases")

DEFAULT_SUCCESS_MESSAGE = "Purchase saved."


class PurchaseService:
    def __init__(
        self,
        ledger: StockLedger,
        client: WebhookClient,
        endpoint: Optional[str],
        history_endpoint: Optional[str] = None,
        history_timeout: float | None = None,
        id_factory: Callable[[], str] = generate_purchase_id,
    ):
        self.ledger = ledger
        self.client = client
        self.endpoint = endpoint
        self.history_endpoint = history_endpoint
        self.history_timeout = history_timeout
        self.id_factory = id_factory
        self.history: list[PurchaseTransaction] = []
        self.last_message: Optional[str] = None
        self._saving = False

    def submit_purchase(
        self,
        supplier: str,
        tanggal: str,
        items: Iterable[dict],
        foto_url: Optional[str] = None,
    ) -> PurchaseTransaction:
        """
        items: [{kode, nama, warna, qty, harga_beli}]

        Known codes gain stock and take the new purchase price; unknown codes
        become new stock items once the webhook confirms the write.
        """
        if self._saving:
            raise SubmitInProgressError("A purchase is already being saved.")
        if not self.endpoint:
            raise ConfigurationError("Purchase webhook endpoint is not configured.")

        order = validate_purchase(supplier, tanggal, items)
        image_url = sanitize_string(foto_url) or None
        payload = {
            "id": self.id_factory(),
            "supplier": order.party,
            "tanggal": order.tanggal,
            "items": order.lines,
            "total": order.total,
            "foto_url": image_url or "",
            "created_at": utc_now_iso(),
        }

        self._saving = True
        try:
            response = self.client.post(self.endpoint, payload)
        except Exception as e:
            log.warning("purchase_submit_failed id=%s error=%s", payload["id"], e)
            raise
        finally:
            self._saving = False

        tx = PurchaseTransaction(
            id=payload["id"],
            items=tuple(
                PurchaseItem(
                    kode=line["kode_barang"],
                    nama=line["nama_barang"],
                    warna=line["warna"],
                    qty=line["qty"],
                    harga_beli=line["harga_beli"],
                    supplier=order.party,
                    tanggal=order.tanggal,
                    image_url=image_url,
                )
                for line in order.lines
            ),
            total=order.total,
            image_url=image_url,
        )
        self.ledger.apply_purchase(tx)
        self.history = ([tx] + self.history)[:HISTORY_LIMIT]
        self.last_message = server_message(response) or DEFAULT_SUCCESS_MESSAGE
        log.info("purchase_created id=%s items=%s total=%s supplier=%s", tx.id, len(tx.items), tx.total, order.party)
        return tx

    def fetch_history(self) -> list[PurchaseTransaction]:
        if not self.history_endpoint:
            raise ConfigurationError("Purchase history webhook endpoint is not configured.")
        response = self.client.post(self.history_endpoint, {"action": "read"}, timeout=self.history_timeout)
        history = normalize_purchase_history(response)
        if not history:
            raise EmptyResponseError("Purchase history from the webhook is empty.")
        self.history = history
        log.info("purchase_history_loaded count=%s", len(history))
        return history

    def remove_history(self, tx_id: str) -> None:
        self.history = [tx for tx in self.history if tx.id != tx_id]
