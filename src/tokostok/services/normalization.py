"""Turn loosely shaped webhook JSON into domain records.

The webhook is a no-code automation backend whose response shape drifts: a bare
list, a list wrapped under one of several keys, an object keyed by id, or a
single object. ``classify_payload`` names which of those arrived and the
normalizers dispatch on that, so nothing here raises for an odd-but-present
payload. Rows without a code or a name are dropped silently.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, Optional, Sequence, Union

from tokostok.domain.models import (
    PurchaseItem,
    PurchaseTransaction,
    SaleItem,
    SaleTransaction,
    StockItem,
    VariantStock,
)
from tokostok.domain.policies import (
    BUY_PRICE_KEYS,
    CODE_KEYS,
    COLOR_KEYS,
    CUSTOMER_KEYS,
    DEFAULT_CUSTOMER,
    HISTORY_WRAPPER_KEYS,
    IMAGE_KEYS,
    LINE_QTY_KEYS,
    NAME_KEYS,
    QTY_KEYS,
    SELL_PRICE_KEYS,
    STOCK_WRAPPER_KEYS,
    TX_ID_KEYS,
    TX_TIME_KEYS,
    TX_TOTAL_KEYS,
    default_sale_price,
)
from tokostok.services.validation import parse_number, sanitize_number, sanitize_string, split_colors

log = logging.getLogger("tokostok.normalization")


@dataclass(frozen=True)
class ArrayPayload:
    rows: list


@dataclass(frozen=True)
class WrappedPayload:
    key: str
    rows: list


@dataclass(frozen=True)
class KeyedObjectPayload:
    rows: list


@dataclass(frozen=True)
class SingleObjectPayload:
    row: dict


@dataclass(frozen=True)
class EmptyPayload:
    pass


Payload = Union[ArrayPayload, WrappedPayload, KeyedObjectPayload, SingleObjectPayload, EmptyPayload]


def _lookup_path(payload: dict, dotted: str) -> object:
    node: object = payload
    for part in dotted.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def classify_payload(
    payload: object,
    wrapper_keys: Sequence[str] = STOCK_WRAPPER_KEYS,
    allow_objects: bool = True,
) -> Payload:
    """Decide where the record list lives.

    Order: each wrapper key, then the payload itself as a list, then (when
    ``allow_objects``) an object whose values are all objects, then a single
    object.
    """
    if isinstance(payload, dict):
        for key in wrapper_keys:
            found = _lookup_path(payload, key)
            if isinstance(found, list):
                return WrappedPayload(key=key, rows=found)
    if isinstance(payload, list):
        return ArrayPayload(rows=payload)
    if allow_objects and isinstance(payload, dict) and payload:
        values = list(payload.values())
        if all(isinstance(v, dict) for v in values):
            return KeyedObjectPayload(rows=values)
        return SingleObjectPayload(row=payload)
    return EmptyPayload()


def payload_rows(payload: Payload) -> list[dict]:
    if isinstance(payload, (ArrayPayload, WrappedPayload, KeyedObjectPayload)):
        rows = payload.rows
    elif isinstance(payload, SingleObjectPayload):
        rows = [payload.row]
    else:
        rows = []
    return [r for r in rows if isinstance(r, dict)]


def _first(row: dict, keys: Iterable[str]) -> object:
    for key in keys:
        value = row.get(key)
        if value is not None:
            return value
    return None


def _first_text(rows: Iterable[dict], keys: Iterable[str]) -> str:
    keys = tuple(keys)
    for row in rows:
        for key in keys:
            value = row.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                value = str(value)
            text = sanitize_string(value)
            if text:
                return text
    return ""


def _first_time(rows: Iterable[dict], keys: Iterable[str]) -> object:
    """First present timestamp value, kept raw so epoch numbers survive."""
    keys = tuple(keys)
    for row in rows:
        for key in keys:
            value = row.get(key)
            if isinstance(value, str) and not value.strip():
                continue
            if value is not None and not isinstance(value, bool):
                return value
    return None


def _line_value(it: dict, row: dict, item_keys: Iterable[str], row_key: str) -> object:
    """Line field, falling back to the transaction row for flattened rows."""
    value = _first(it, item_keys)
    return value if value is not None else row.get(row_key)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


_DAY_FIRST_FORMATS = ("%d/%m/%Y", "%d/%m/%Y %H:%M", "%d/%m/%Y %H:%M:%S", "%d-%m-%Y")


def _parse_date_text(text: str) -> Optional[datetime]:
    """ISO-8601, day-first local dates (05/01/2024 is 5 January) or RFC 2822."""
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in _DAY_FIRST_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: object, now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC string; anything unparseable becomes ``now``."""
    fallback = now or datetime.now(timezone.utc)
    parsed: Optional[datetime] = None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # epoch milliseconds, like the webhook's JavaScript clients send
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            parsed = None
    elif isinstance(value, str) and value.strip():
        parsed = _parse_date_text(value.strip())

    if parsed is None:
        parsed = fallback
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()


def _stock_item(row: dict, idx: int) -> Optional[StockItem]:
    kode = _first_text([row], CODE_KEYS)
    nama = _first_text([row], NAME_KEYS)
    if not kode or not nama:
        return None

    qty = sanitize_number(_first(row, QTY_KEYS))
    harga_beli = sanitize_number(_first(row, BUY_PRICE_KEYS))
    harga_jual_raw = _first(row, SELL_PRICE_KEYS)
    harga_jual = (
        sanitize_number(harga_jual_raw) if harga_jual_raw is not None else default_sale_price(harga_beli)
    )
    warna = tuple(split_colors(_first(row, COLOR_KEYS)))
    # Per-colour stock is not in the payload; every colour carries the total.
    variants = tuple(VariantStock(name=w, qty=qty) for w in warna)

    return StockItem(
        id=f"stok-{kode}-{idx}",
        kode=kode,
        nama=nama,
        qty=qty,
        harga_beli=harga_beli,
        harga_jual=harga_jual,
        warna=warna,
        variant_stock=variants,
    )


def normalize_stock(payload: object) -> list[StockItem]:
    shape = classify_payload(payload)
    rows = payload_rows(shape)
    items = [it for it in (_stock_item(row, idx) for idx, row in enumerate(rows)) if it is not None]
    if len(items) < len(rows):
        log.info("stock_rows_dropped shape=%s kept=%s dropped=%s", type(shape).__name__, len(items), len(rows) - len(items))
    return items


def _line_sources(row: dict) -> list[dict]:
    nested = row.get("items")
    if isinstance(nested, list) and nested:
        return [it for it in nested if isinstance(it, dict)]
    return [row]


def _transaction_total(row: dict, computed: float) -> float:
    explicit = parse_number(_first(row, TX_TOTAL_KEYS))
    total = explicit if explicit is not None else computed
    return max(0, total)


def _sale_item(it: dict, row: dict) -> Optional[SaleItem]:
    kode = _first_text([it], ("kode", "kode_barang")) or _first_text([row], ("kode_barang",))
    nama = _first_text([it], ("nama", "nama_barang")) or _first_text([row], ("nama_barang",))
    if not kode or not nama:
        return None
    qty = max(0, sanitize_number(_line_value(it, row, LINE_QTY_KEYS, "qty")))
    harga_jual = max(0, sanitize_number(_line_value(it, row, ("hargaJual", "harga_jual"), "harga_jual")))
    return SaleItem(
        kode=kode,
        nama=nama,
        warna=_first_text([it, row], ("warna",)),
        qty=qty,
        harga_jual=harga_jual,
        subtotal=qty * harga_jual,
    )


def normalize_sale_history(payload: object) -> list[SaleTransaction]:
    rows = payload_rows(classify_payload(payload, HISTORY_WRAPPER_KEYS, allow_objects=False))
    out: list[SaleTransaction] = []
    for idx, row in enumerate(rows):
        tx_id = _first_text([row], TX_ID_KEYS) or f"tx-{idx}"
        items = tuple(i for i in (_sale_item(it, row) for it in _line_sources(row)) if i is not None)
        computed = sum(i.subtotal for i in items)
        out.append(
            SaleTransaction(
                id=tx_id,
                customer=_first_text([row], CUSTOMER_KEYS) or DEFAULT_CUSTOMER,
                timestamp=parse_timestamp(_first_time([row], TX_TIME_KEYS)),
                items=items,
                total=_transaction_total(row, computed),
            )
        )
    return out


def _purchase_item(it: dict, row: dict) -> Optional[PurchaseItem]:
    kode = _first_text([it], ("kode", "kode_barang")) or _first_text([row], ("kode_barang",))
    nama = _first_text([it], ("nama", "nama_barang")) or _first_text([row], ("nama_barang",))
    if not kode or not nama:
        return None
    qty = max(0, sanitize_number(_line_value(it, row, LINE_QTY_KEYS, "qty")))
    harga_beli = max(0, sanitize_number(_line_value(it, row, ("hargaBeli", "harga_beli"), "harga_beli")))
    tanggal_raw = _first_time([it], ("tanggal",))
    if tanggal_raw is None:
        tanggal_raw = _first_time([row], ("tanggal", "created_at"))
    return PurchaseItem(
        kode=kode,
        nama=nama,
        warna=_first_text([it, row], ("warna",)),
        qty=qty,
        harga_beli=harga_beli,
        supplier=_first_text([it, row], ("supplier",)),
        tanggal=parse_timestamp(tanggal_raw),
        image_url=_first_text([it], IMAGE_KEYS) or _first_text([row], ("foto_url",)) or None,
    )


def normalize_purchase_history(payload: object) -> list[PurchaseTransaction]:
    rows = payload_rows(classify_payload(payload, HISTORY_WRAPPER_KEYS, allow_objects=False))
    out: list[PurchaseTransaction] = []
    for idx, row in enumerate(rows):
        tx_id = _first_text([row], TX_ID_KEYS) or f"px-{idx}"
        items = tuple(i for i in (_purchase_item(it, row) for it in _line_sources(row)) if i is not None)
        computed = sum(i.qty * i.harga_beli for i in items)
        out.append(
            PurchaseTransaction(
                id=tx_id,
                items=items,
                total=_transaction_total(row, computed),
                image_url=items[0].image_url if items else None,
            )
        )
    return out
