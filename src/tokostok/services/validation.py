from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence

from tokostok.domain.errors import ValidationError
from tokostok.domain.models import StockItem
from tokostok.domain.policies import NO_COLOR

_NON_NUMERIC = re.compile(r"[^\d.,-]")
_GROUPED = re.compile(r"^-?[1-9]\d{0,2}(?:([.,])\d{3})(?:\1\d{3})*$")
_DANGLING_SEPARATOR = re.compile(r"[.,](?!\d)")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_number(value: object) -> Optional[float]:
    """Best-effort number from a loosely typed value, None when there is none.

    Strings are stripped of everything except digits, separators and '-'
    first, so currency prefixes and spaces are tolerated. A '.' or ',' followed
    by groups of exactly three digits is a thousands separator ("Rp 12.345"
    is 12345); otherwise '.' is the decimal point and ',' is dropped.
    """
    if isinstance(value, bool):
        n = float(value)
    elif isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(_numeric_text(value))
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(n):
        return None
    return int(n) if n.is_integer() else n


def _numeric_text(value: str) -> str:
    text = _NON_NUMERIC.sub("", _DANGLING_SEPARATOR.sub("", value))
    if _GROUPED.match(text):
        return text.replace(".", "").replace(",", "")
    return text.replace(",", "")


def sanitize_number(value: object, fallback: float = 0) -> float:
    n = parse_number(value)
    return fallback if n is None else n


def sanitize_string(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def is_valid_date_string(value: object) -> bool:
    """True for a real calendar date written as YYYY-MM-DD."""
    text = sanitize_string(value)
    if not _ISO_DATE.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def split_colors(value: object) -> list[str]:
    if isinstance(value, str):
        parts: Iterable[object] = value.split(",")
    elif isinstance(value, (list, tuple)):
        parts = value
    else:
        return []
    return [c for c in (sanitize_string(p) for p in parts) if c]


@dataclass(frozen=True)
class ValidatedOrder:
    """Checked form input, with lines already in webhook payload shape."""

    party: str
    tanggal: str
    lines: list[dict]
    total: float


def _find(stock: Sequence[StockItem], kode: str) -> Optional[StockItem]:
    for item in stock:
        if item.kode == kode:
            return item
    return None


def _available_for_color(item: StockItem, warna: str) -> Optional[float]:
    for v in item.variant_stock:
        if v.name == warna:
            return v.qty
    return None


def validate_sale(
    customer: object,
    tanggal: object,
    items: Iterable[dict],
    stock: Sequence[StockItem],
) -> ValidatedOrder:
    """
    items: [{kode, nama, warna, qty, harga_jual}]

    Every problem is collected; one ValidationError carries them all.
    """
    items = list(items)
    customer = sanitize_string(customer)
    tanggal = sanitize_string(tanggal)

    errors: list[str] = []
    if not customer:
        errors.append("Customer is required.")
    if not items:
        errors.append("Add at least one item.")
    if not is_valid_date_string(tanggal):
        errors.append("Date is not valid.")

    lines: list[dict] = []
    qty_by_code: Counter[str] = Counter()
    qty_by_variant: Counter[tuple[str, str]] = Counter()
    for it in items:
        kode = sanitize_string(it.get("kode"))
        nama = sanitize_string(it.get("nama"))
        warna = sanitize_string(it.get("warna"))
        qty = sanitize_number(it.get("qty"))
        harga = sanitize_number(it.get("harga_jual"))

        stock_item = _find(stock, kode)
        has_colors = stock_item is not None and bool(stock_item.variant_stock or stock_item.warna)

        if not kode or not nama:
            errors.append("Code and name are required for every item.")
        if has_colors and not warna:
            errors.append(f"Pick a color for {nama or kode}.")
        if qty <= 0:
            errors.append("Item qty must be greater than 0.")
        if harga < 0:
            errors.append("Sale price must be a number >= 0.")

        # Aggregate repeated lines so the same product cannot be oversold.
        if stock_item is not None:
            qty_by_code[kode] += qty
            if qty_by_code[kode] > stock_item.qty:
                errors.append("Not enough stock for one of the items.")
            if warna:
                qty_by_variant[(kode, warna)] += qty
                available = _available_for_color(stock_item, warna)
                if available is not None and qty_by_variant[(kode, warna)] > available:
                    errors.append("Not enough stock for one of the items.")

        lines.append(
            {
                "kode_barang": kode,
                "nama_barang": nama,
                "qty": qty,
                "harga_jual": harga,
                "warna": warna or NO_COLOR,
                "total": qty * harga,
            }
        )

    total = sum(line["total"] for line in lines)
    if total <= 0:
        errors.append("Total must not be 0.")

    if errors:
        raise ValidationError(errors)
    return ValidatedOrder(party=customer, tanggal=tanggal, lines=lines, total=total)


def validate_purchase(supplier: object, tanggal: object, items: Iterable[dict]) -> ValidatedOrder:
    """
    items: [{kode, nama, warna, qty, harga_beli}]
    """
    items = list(items)
    supplier = sanitize_string(supplier)
    tanggal = sanitize_string(tanggal)

    errors: list[str] = []
    if not supplier:
        errors.append("Supplier is required.")
    if not items:
        errors.append("Add at least one item.")
    if not is_valid_date_string(tanggal):
        errors.append("Date is not valid.")

    lines: list[dict] = []
    for it in items:
        kode = sanitize_string(it.get("kode"))
        nama = sanitize_string(it.get("nama"))
        warna = sanitize_string(it.get("warna"))
        qty = sanitize_number(it.get("qty"))
        harga_beli = sanitize_number(it.get("harga_beli"))

        if not kode or not nama:
            errors.append("Item code and name are required.")
        if qty <= 0:
            errors.append("Qty must be greater than 0.")
        if harga_beli < 0:
            errors.append("Purchase price must be a number >= 0.")

        lines.append(
            {
                "kode_barang": kode,
                "nama_barang": nama,
                "qty": qty,
                "harga_beli": harga_beli,
                "warna": warna or NO_COLOR,
                "total": qty * harga_beli,
            }
        )

    total = sum(line["total"] for line in lines)
    if total <= 0:
        errors.append("Total must not be 0.")

    if errors:
        raise ValidationError(errors)
    return ValidatedOrder(party=supplier, tanggal=tanggal, lines=lines, total=total)


def validate_stock_edit(kode: object, nama: object, qty: object, harga_beli: object, harga_jual: object) -> None:
    errors: list[str] = []
    if not sanitize_string(kode) or not sanitize_string(nama):
        errors.append("Code and name are required.")
    if sanitize_number(qty, fallback=-1) < 0:
        errors.append("Stock must be >= 0.")
    if sanitize_number(harga_beli, fallback=-1) < 0:
        errors.append("Purchase price must be >= 0.")
    if sanitize_number(harga_jual, fallback=-1) < 0:
        errors.append("Sale price must be >= 0.")
    if errors:
        raise ValidationError(errors)
