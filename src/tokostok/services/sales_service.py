from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from tokostok.domain.errors import ConfigurationError, EmptyResponseError, SubmitInProgressError
from tokostok.domain.models import SaleItem, SaleTransaction
from tokostok.domain.policies import HISTORY_LIMIT
from tokostok.services.id_generator import generate_sale_id
from tokostok.services.ledger import StockLedger
from tokostok.services.normalization import normalize_sale_history, parse_timestamp, utc_now_iso
from tokostok.services.validation import validate_sale
from tokostok.services.webhook_client import WebhookClient, server_message

log = logging.getLogger("tokostok.sales")

DEFAULT_SUCCESS_MESSAGE = "Transaction saved."


class SalesService:
    def __init__(
        self,
        ledger: StockLedger,
        client: WebhookClient,
        endpoint: Optional[str],
        history_endpoint: Optional[str] = None,
        history_timeout: float | None = None,
        id_factory: Callable[[], str] = generate_sale_id,
    ):
        self.ledger = ledger
        self.client = client
        self.endpoint = endpoint
        self.history_endpoint = history_endpoint
        self.history_timeout = history_timeout
        self.id_factory = id_factory
        self.history: list[SaleTransaction] = []
        self.last_transaction: Optional[SaleTransaction] = None
        self.last_message: Optional[str] = None
        self._saving = False

    def submit_sale(self, customer: str, tanggal: str, items: Iterable[dict]) -> SaleTransaction:
        """
        items: [{kode, nama, warna, qty, harga_jual}]

        The ledger changes only after the webhook confirms the write.
        """
        if self._saving:
            raise SubmitInProgressError("A sale is already being saved.")
        if not self.endpoint:
            raise ConfigurationError("Sales webhook endpoint is not configured.")

        order = validate_sale(customer, tanggal, items, self.ledger.items)
        payload = {
            "id": self.id_factory(),
            "customer": order.party,
            "tanggal": order.tanggal,
            "items": order.lines,
            "total": order.total,
            "created_at": utc_now_iso(),
        }

        self._saving = True
        try:
            response = self.client.post(self.endpoint, payload)
        except Exception as e:
            log.warning("sale_submit_failed id=%s error=%s", payload["id"], e)
            raise
        finally:
            self._saving = False

        tx = SaleTransaction(
            id=payload["id"],
            customer=order.party,
            timestamp=parse_timestamp(order.tanggal),
            items=tuple(
                SaleItem(
                    kode=line["kode_barang"],
                    nama=line["nama_barang"],
                    warna=line["warna"],
                    qty=line["qty"],
                    harga_jual=line["harga_jual"],
                    subtotal=line["total"],
                )
                for line in order.lines
            ),
            total=order.total,
        )
        self.ledger.apply_sale(tx)
        self.history = ([tx] + self.history)[:HISTORY_LIMIT]
        self.last_transaction = tx
        self.last_message = server_message(response) or DEFAULT_SUCCESS_MESSAGE
        log.info("sale_created id=%s items=%s total=%s", tx.id, len(tx.items), tx.total)
        return tx

    def fetch_history(self) -> list[SaleTransaction]:
        if not self.history_endpoint:
            raise ConfigurationError("Sales history webhook endpoint is not configured.")
        response = self.client.post(self.history_endpoint, {"action": "read"}, timeout=self.history_timeout)
        history = normalize_sale_history(response)
        if not history:
            raise EmptyResponseError("Sales history from the webhook is empty.")
        self.history = history
        log.info("sales_history_loaded count=%s", len(history))
        return history

    def remove_history(self, tx_id: str) -> None:
        self.history = [tx for tx in self.history if tx.id != tx_id]

