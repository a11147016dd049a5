from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import replace
from typing import Iterable

from tokostok.domain.errors import DuplicateCodeError
from tokostok.domain.models import (
    PurchaseItem,
    PurchaseTransaction,
    SaleTransaction,
    StockItem,
    StockSummary,
    VariantStock,
)
from tokostok.domain.policies import (
    HISTORY_LIMIT,
    LOW_STOCK,
    MID_STOCK,
    NO_COLOR,
    RESTOCK_THRESHOLD,
    default_sale_price,
)

log = logging.getLogger("tokostok.ledger")


def new_item_id(prefix: str = "item") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def stock_level(qty: float) -> str:
    if qty < LOW_STOCK:
        return "red"
    if qty <= MID_STOCK:
        return "yellow"
    return "green"


def _is_color(warna: str) -> bool:
    return bool(warna) and warna != NO_COLOR


class StockLedger:
    """In-memory stock for one application session, plus bounded histories.

    Single writer: every mutation is synchronous and replaces whole records, so
    readers always get a consistent snapshot. Construct one per application
    root (or per test) and pass it to the controllers.
    """

    def __init__(self, items: Iterable[StockItem] = (), history_limit: int = HISTORY_LIMIT):
        self._items: list[StockItem] = list(items)
        self._sales: list[SaleTransaction] = []
        self._purchases: list[PurchaseTransaction] = []
        self.history_limit = history_limit

    @property
    def items(self) -> tuple[StockItem, ...]:
        return tuple(self._items)

    @property
    def sales(self) -> tuple[SaleTransaction, ...]:
        return tuple(self._sales)

    @property
    def purchases(self) -> tuple[PurchaseTransaction, ...]:
        return tuple(self._purchases)

    def get(self, item_id: str) -> StockItem | None:
        return next((it for it in self._items if it.id == item_id), None)

    def find_by_code(self, kode: str) -> StockItem | None:
        return next((it for it in self._items if it.kode == kode), None)

    def set_items(self, items: Iterable[StockItem]) -> None:
        self._items = list(items)

    def update_item(self, item_id: str, **fields) -> None:
        self._items = [replace(it, **fields) if it.id == item_id else it for it in self._items]

    def update_price(self, item_id: str, harga_beli: float, harga_jual: float) -> None:
        self.update_item(item_id, harga_beli=harga_beli, harga_jual=harga_jual)

    def remove_item(self, item_id: str) -> None:
        self._items = [it for it in self._items if it.id != item_id]

    def add_item(self, item: StockItem) -> StockItem:
        """Prepends ``item`` under a fresh id. Duplicate business codes are rejected."""
        if self.find_by_code(item.kode) is not None:
            raise DuplicateCodeError(f"Item code {item.kode} already exists.")
        added = replace(item, id=new_item_id())
        self._items = [added] + self._items
        return added

    def apply_sale(self, tx: SaleTransaction) -> None:
        sold_by_code: Counter[str] = Counter()
        sold_by_variant: Counter[tuple[str, str]] = Counter()
        for line in tx.items:
            sold_by_code[line.kode] += line.qty
            sold_by_variant[(line.kode, line.warna)] += line.qty

        updated: list[StockItem] = []
        for it in self._items:
            if it.kode not in sold_by_code:
                updated.append(it)
                continue
            # Upstream validation prevents overselling; clamp anyway.
            variants = tuple(
                replace(v, qty=max(0, v.qty - sold_by_variant[(it.kode, v.name)]))
                if (it.kode, v.name) in sold_by_variant
                else v
                for v in it.variant_stock
            )
            updated.append(replace(it, qty=max(0, it.qty - sold_by_code[it.kode]), variant_stock=variants))

        self._items = updated
        self._sales = ([tx] + self._sales)[: self.history_limit]
        log.info("ledger_sale_applied id=%s lines=%s", tx.id, len(tx.items))

    def apply_purchase(self, tx: PurchaseTransaction) -> None:
        by_code: dict[str, list[PurchaseItem]] = {}
        for line in tx.items:
            by_code.setdefault(line.kode, []).append(line)

        known = {it.kode for it in self._items}
        updated = [self._receive(it, by_code[it.kode]) if it.kode in by_code else it for it in self._items]

        created = [self._new_from_purchase(lines) for kode, lines in by_code.items() if kode not in known]

        self._items = updated + created
        self._purchases = ([tx] + self._purchases)[: self.history_limit]
        log.info("ledger_purchase_applied id=%s lines=%s new_items=%s", tx.id, len(tx.items), len(created))

    @staticmethod
    def _receive(item: StockItem, lines: list[PurchaseItem]) -> StockItem:
        received = sum(line.qty for line in lines)
        variants = list(item.variant_stock)
        warna = list(item.warna)
        for line in lines:
            if not _is_color(line.warna):
                continue
            for i, v in enumerate(variants):
                if v.name == line.warna:
                    variants[i] = replace(v, qty=v.qty + line.qty)
                    break
            else:
                variants.append(VariantStock(name=line.warna, qty=line.qty))
                if line.warna not in warna:
                    warna.append(line.warna)
        return replace(
            item,
            qty=item.qty + received,
            # last purchase price wins, no averaging
            harga_beli=lines[-1].harga_beli,
            warna=tuple(warna),
            variant_stock=tuple(variants),
        )

    @staticmethod
    def _new_from_purchase(lines: list[PurchaseItem]) -> StockItem:
        first, last = lines[0], lines[-1]
        qty_by_color: dict[str, float] = {}
        for line in lines:
            if _is_color(line.warna):
                qty_by_color[line.warna] = qty_by_color.get(line.warna, 0) + line.qty
        return StockItem(
            id=new_item_id("new"),
            kode=first.kode,
            nama=first.nama,
            qty=sum(line.qty for line in lines),
            harga_beli=last.harga_beli,
            harga_jual=default_sale_price(last.harga_beli),
            warna=tuple(qty_by_color),
            variant_stock=tuple(VariantStock(name=c, qty=q) for c, q in qty_by_color.items()),
        )

    def summary(self) -> StockSummary:
        colors: dict[str, None] = {}
        for it in self._items:
            for name in (v.name for v in it.variant_stock) if it.variant_stock else it.warna:
                colors.setdefault(name, None)
        return StockSummary(
            item_count=len(self._items),
            total_value=sum(it.qty * it.harga_beli for it in self._items),
            low_stock_count=sum(1 for it in self._items if it.qty < RESTOCK_THRESHOLD),
            colors=tuple(colors),
        )
