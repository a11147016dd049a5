import pytest
import requests

from conftest import FakeResponse, FakeSession, json_response
from tokostok.domain.errors import (
    BusinessError,
    ConfigurationError,
    DuplicateCodeError,
    EmptyResponseError,
    HttpError,
    NotFoundError,
    RequestTimeoutError,
    SubmitInProgressError,
    ValidationError,
)
from tokostok.domain.models import SaleTransaction
from tokostok.domain.policies import HISTORY_LIMIT
from tokostok.services.ledger import StockLedger
from tokostok.services.purchase_service import PurchaseService
from tokostok.services.sales_service import SalesService
from tokostok.services.stock_service import StockService
from tokostok.services.webhook_client import WebhookClient

STOCK_URL = "https://hooks.example/stok"
SALES_URL = "https://hooks.example/penjualan"
PURCHASES_URL = "https://hooks.example/pembelian"
HISTORY_URL = "https://hooks.example/riwayat"

ROWS = {
    "data": [
        {"kode_barang": "SKU-1", "nama_barang": "Item", "stok_akhir": "10", "harga_beli": 1000, "warna": "Merah, Biru"},
        {"kode_barang": "SKU-2", "nama_barang": "Plain", "stok_akhir": 2, "harga_beli": 100, "harga_jual": 150},
    ]
}


def _loaded(*outcomes):
    """Ledger loaded from ROWS, with a client that replays ``outcomes`` afterwards."""
    session = FakeSession(json_response(ROWS), *outcomes)
    ledger = StockLedger()
    client = WebhookClient(session=session)
    StockService(ledger, client, STOCK_URL).refresh()
    return ledger, client, session


def test_refresh_uses_get_when_it_returns_rows():
    ledger, _client, session = _loaded()

    assert [c["method"] for c in session.calls] == ["GET"]
    assert [it.kode for it in ledger.items] == ["SKU-1", "SKU-2"]


def test_refresh_falls_back_to_post_when_get_is_empty():
    session = FakeSession(json_response({"data": []}), json_response(ROWS))
    ledger = StockLedger()

    items = StockService(ledger, WebhookClient(session=session), STOCK_URL).refresh()

    assert len(items) == 2
    assert [(c["method"], c["body"]) for c in session.calls] == [("GET", None), ("POST", {"action": "read"})]


def test_refresh_falls_back_to_post_when_get_fails():
    session = FakeSession(FakeResponse(405, "Method Not Allowed"), json_response(ROWS))
    ledger = StockLedger()

    StockService(ledger, WebhookClient(session=session), STOCK_URL).refresh()

    assert len(ledger.items) == 2


def test_refresh_with_nothing_usable_keeps_current_ledger():
    ledger = StockLedger()
    StockService(ledger, WebhookClient(session=FakeSession(json_response(ROWS))), STOCK_URL).refresh()
    session = FakeSession(json_response([]), json_response({"data": [{"nama_barang": "no code"}]}))

    with pytest.raises(EmptyResponseError):
        StockService(ledger, WebhookClient(session=session), STOCK_URL).refresh()
    assert len(ledger.items) == 2


def test_refresh_surfaces_post_error_after_both_attempts_fail():
    session = FakeSession(requests.Timeout("slow"), requests.Timeout("slow"))

    with pytest.raises(RequestTimeoutError):
        StockService(StockLedger(), WebhookClient(session=session), STOCK_URL).refresh()


def test_refresh_without_endpoint():
    with pytest.raises(ConfigurationError):
        StockService(StockLedger(), WebhookClient(session=FakeSession()), None).refresh()


def test_dashboard_add_edit_price_and_remove():
    ledger, client, _session = _loaded()
    stock = StockService(ledger, client, STOCK_URL)

    added = stock.add_item("SKU-3", "Cable", 5, 2000, warna="Hitam")
    assert ledger.items[0] == added
    assert added.harga_jual == 2400
    with pytest.raises(DuplicateCodeError):
        stock.add_item("SKU-1", "Again", 1, 1)

    edited = stock.edit_item(added.id, "Cable Fast", 8, 2100, 3000, "Hitam, Merah")
    assert edited.qty == 8
    assert [(v.name, v.qty) for v in edited.variant_stock] == [("Hitam", 8), ("Merah", 8)]

    stock.update_price(added.id, 2200, 3100)
    assert ledger.get(added.id).harga_beli == 2200
    with pytest.raises(ValidationError):
        stock.update_price(added.id, -1, 3100)
    with pytest.raises(NotFoundError):
        stock.edit_item("missing", "x", 1, 1, 1, "")

    stock.remove_items([added.id, "stok-SKU-2-1"])
    assert [it.kode for it in ledger.items] == ["SKU-1"]


def test_submit_sale_posts_payload_then_applies_to_ledger():
    ledger, client, session = _loaded(json_response({"success": True, "message": "Tersimpan"}))
    sales = SalesService(ledger, client, SALES_URL, id_factory=lambda: "PJ-20240105-0001")

    tx = sales.submit_sale(
        "Budi", "2024-01-05", [{"kode": "SKU-1", "nama": "Item", "warna": "Biru", "qty": 3, "harga_jual": 1200}]
    )

    body = session.calls[-1]["body"]
    assert session.calls[-1]["url"] == SALES_URL
    assert body["id"] == "PJ-20240105-0001"
    assert body["customer"] == "Budi"
    assert body["tanggal"] == "2024-01-05"
    assert body["items"] == [
        {"kode_barang": "SKU-1", "nama_barang": "Item", "qty": 3, "harga_jual": 1200, "warna": "Biru", "total": 3600}
    ]
    assert body["total"] == 3600
    assert body["created_at"].endswith("Z")

    item = ledger.find_by_code("SKU-1")
    assert item.qty == 7
    assert [(v.name, v.qty) for v in item.variant_stock] == [("Merah", 10), ("Biru", 7)]
    assert ledger.sales == (tx,)
    assert sales.history[0] == tx
    assert sales.last_message == "Tersimpan"
    assert tx.timestamp == "2024-01-05T00:00:00+00:00"


def test_sale_over_stock_is_rejected_before_the_network():
    ledger, client, session = _loaded()
    calls_before = len(session.calls)
    sales = SalesService(ledger, client, SALES_URL)

    with pytest.raises(ValidationError, match="Not enough stock"):
        sales.submit_sale("Budi", "2024-01-05", [{"kode": "SKU-1", "nama": "Item", "warna": "Merah", "qty": 15, "harga_jual": 1200}])

    assert len(session.calls) == calls_before
    assert ledger.find_by_code("SKU-1").qty == 10


@pytest.mark.parametrize(
    "outcome, error",
    [
        (json_response({"message": "db down"}, status_code=500), HttpError),
        (json_response({"success": False, "message": "Ditolak"}), BusinessError),
        (requests.Timeout("slow"), RequestTimeoutError),
    ],
)
def test_failed_sale_write_leaves_ledger_untouched(outcome, error):
    ledger, client, _session = _loaded(outcome)
    sales = SalesService(ledger, client, SALES_URL)

    with pytest.raises(error):
        sales.submit_sale("Budi", "2024-01-05", [{"kode": "SKU-2", "nama": "Plain", "qty": 1, "harga_jual": 150}])

    assert ledger.find_by_code("SKU-2").qty == 2
    assert ledger.sales == ()
    assert sales.history == []
    assert sales._saving is False


def test_session_history_keeps_the_newest_entries():
    ledger, client, _session = _loaded(json_response({"success": True}))
    sales = SalesService(ledger, client, SALES_URL, id_factory=lambda: "PJ-NEW")
    sales.history = [
        SaleTransaction(id=f"PJ-{n}", customer="Umum", timestamp="2024-01-01T00:00:00+00:00", items=(), total=0)
        for n in range(HISTORY_LIMIT)
    ]

    sales.submit_sale("Budi", "2024-01-05", [{"kode": "SKU-2", "nama": "Plain", "qty": 1, "harga_jual": 150}])

    assert len(sales.history) == HISTORY_LIMIT
    assert sales.history[0].id == "PJ-NEW"
    assert sales.history[-1].id == f"PJ-{HISTORY_LIMIT - 2}"


def test_sale_without_endpoint_fails_fast():
    ledger, client, session = _loaded()
    calls_before = len(session.calls)

    with pytest.raises(ConfigurationError):
        SalesService(ledger, client, None).submit_sale("Budi", "2024-01-05", [])
    assert len(session.calls) == calls_before


def test_submit_is_refused_while_a_save_is_in_flight():
    ledger, client, _session = _loaded()
    sales = SalesService(ledger, client, SALES_URL)
    sales._saving = True

    with pytest.raises(SubmitInProgressError):
        sales.submit_sale("Budi", "2024-01-05", [{"kode": "SKU-2", "nama": "Plain", "qty": 1, "harga_jual": 150}])


def test_sales_history_fetch_replaces_history():
    ledger, client, session = _loaded(
        json_response({"data": [{"id": "PJ-1", "customer": "Ani", "kode_barang": "SKU-1", "nama_barang": "Item", "qty": 1, "harga_jual": 1200}]})
    )
    sales = SalesService(ledger, client, SALES_URL, history_endpoint=HISTORY_URL, history_timeout=20.0)

    history = sales.fetch_history()

    assert [tx.id for tx in history] == ["PJ-1"]
    assert session.calls[-1]["body"] == {"action": "read"}
    assert session.calls[-1]["timeout"] == 20.0
    sales.remove_history("PJ-1")
    assert sales.history == []


def test_empty_history_is_reported():
    ledger, client, _session = _loaded(json_response({"data": []}))
    sales = SalesService(ledger, client, SALES_URL, history_endpoint=HISTORY_URL)

    with pytest.raises(EmptyResponseError):
        sales.fetch_history()
    with pytest.raises(ConfigurationError):
        SalesService(ledger, client, SALES_URL).fetch_history()


def test_submit_purchase_creates_new_item_and_restocks_existing():
    ledger, client, session = _loaded(json_response({"success": True}))
    purchases = PurchaseService(ledger, client, PURCHASES_URL, id_factory=lambda: "BL-20240105-0002")

    tx = purchases.submit_purchase(
        "PT Sumber",
        "2024-01-05",
        [
            {"kode": "SKU-99", "nama": "Baru", "warna": "Hitam", "qty": 4, "harga_beli": 5000},
            {"kode": "SKU-2", "nama": "Plain", "qty": 3, "harga_beli": 120},
        ],
        foto_url="https://img.example/nota.jpg",
    )

    body = session.calls[-1]["body"]
    assert body["supplier"] == "PT Sumber"
    assert body["foto_url"] == "https://img.example/nota.jpg"
    assert body["items"][1] == {"kode_barang": "SKU-2", "nama_barang": "Plain", "qty": 3, "harga_beli": 120, "warna": "-", "total": 360}
    assert body["total"] == 20360

    created = ledger.find_by_code("SKU-99")
    assert created.harga_jual == 6000
    assert [(v.name, v.qty) for v in created.variant_stock] == [("Hitam", 4)]
    restocked = ledger.find_by_code("SKU-2")
    assert restocked.qty == 5
    assert restocked.harga_beli == 120
    assert ledger.purchases == (tx,)
    assert purchases.last_message == "Purchase saved."


def test_purchase_validation_never_reaches_network():
    ledger, client, session = _loaded()
    calls_before = len(session.calls)

    with pytest.raises(ValidationError, match="Supplier is required"):
        PurchaseService(ledger, client, PURCHASES_URL).submit_purchase("", "2024-01-05", [{"kode": "A", "nama": "B", "qty": 1, "harga_beli": 1}])
    assert len(session.calls) == calls_before


def test_purchase_history_fetch():
    ledger, client, _session = _loaded(
        json_response([{"id": "BL-1", "supplier": "PT", "items": [{"kode": "SKU-1", "nama": "Item", "qty": 2, "harga_beli": 900}]}])
    )
    purchases = PurchaseService(ledger, client, PURCHASES_URL, history_endpoint=HISTORY_URL)

    [tx] = purchases.fetch_history()

    assert tx.total == 1800
    assert tx.items[0].supplier == "PT"
