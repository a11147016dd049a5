"""Named heuristics the rest of the package relies on.

These are product decisions, not incidental behaviour: tests assert on them
directly.
"""
from __future__ import annotations

# Sale price when the webhook gives none, and for new items created by a purchase.
SALE_MARKUP = 1.2

# Client-side cache bound for sale and purchase histories.
HISTORY_LIMIT = 50

# Where the stock list may live inside a payload, tried in order.
# A dotted entry walks nested objects.
STOCK_WRAPPER_KEYS = ("data", "result", "records", "items", "data.items")
HISTORY_WRAPPER_KEYS = ("data",)

# Field aliases, first present value wins.
CODE_KEYS = ("kode_barang", "kodeBarang", "kode")
NAME_KEYS = ("nama_barang", "namaBarang", "nama")
QTY_KEYS = ("stok_akhir", "qty", "stok", "stock", "jumlah")
BUY_PRICE_KEYS = ("harga_beli", "hargaBeli")
SELL_PRICE_KEYS = ("harga_jual", "hargaJual")
COLOR_KEYS = ("warna",)

TX_ID_KEYS = ("id", "kode_transaksi", "kode")
TX_TOTAL_KEYS = ("total", "grand_total")
TX_TIME_KEYS = ("timestamp", "tanggal", "created_at")
LINE_QTY_KEYS = ("qty", "jumlah")
CUSTOMER_KEYS = ("customer", "nama_customer")
IMAGE_KEYS = ("foto_url", "imageUrl")

DEFAULT_CUSTOMER = "Umum"
NO_COLOR = "-"

SALE_ID_PREFIX = "PJ"
PURCHASE_ID_PREFIX = "BL"

# Stock badge thresholds: below LOW is red, up to MID is yellow.
LOW_STOCK = 5
MID_STOCK = 10
# Dashboard "low stock" counter threshold.
RESTOCK_THRESHOLD = 10


def default_sale_price(harga_beli: float) -> float:
    return round(harga_beli * SALE_MARKUP)
