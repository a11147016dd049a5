from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VariantStock:
    name: str
    qty: float


@dataclass(frozen=True)
class StockItem:
    id: str
    kode: str
    nama: str
    qty: float
    harga_beli: float
    harga_jual: float
    warna: tuple[str, ...] = ()
    variant_stock: tuple[VariantStock, ...] = ()

    def to_record(self) -> dict:
        """Webhook-shaped row, readable again by normalize_stock."""
        return {
            "kode_barang": self.kode,
            "nama_barang": self.nama,
            "stok_akhir": self.qty,
            "harga_beli": self.harga_beli,
            "harga_jual": self.harga_jual,
            "warna": ", ".join(self.warna),
        }


@dataclass(frozen=True)
class SaleItem:
    kode: str
    nama: str
    warna: str
    qty: float
    harga_jual: float
    subtotal: float


@dataclass(frozen=True)
class SaleTransaction:
    id: str
    customer: str
    timestamp: str
    items: tuple[SaleItem, ...]
    total: float


@dataclass(frozen=True)
class PurchaseItem:
    kode: str
    nama: str
    warna: str
    qty: float
    harga_beli: float
    supplier: str
    tanggal: str
    image_url: Optional[str] = None


@dataclass(frozen=True)
class PurchaseTransaction:
    id: str
    items: tuple[PurchaseItem, ...]
    total: float
    image_url: Optional[str] = None


@dataclass(frozen=True)
class StockSummary:
    item_count: int
    total_value: float
    low_stock_count: int
    colors: tuple[str, ...] = ()
