import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = ""):
        self.status_code = status_code
        self.text = text


def json_response(body, status_code: int = 200) -> FakeResponse:
    return FakeResponse(status_code, json.dumps(body))


class FakeSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def request(self, method, url, data=None, headers=None, timeout=None):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "body": json.loads(data) if data else None,
                "headers": headers,
                "timeout": timeout,
            }
        )
        if not self.outcomes:
            raise AssertionError(f"unexpected request {method} {url}")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def stock_rows():
    return [
        {"kode_barang": "SKU-1", "nama_barang": "Headset A", "stok_akhir": 10, "harga_beli": 1000, "harga_jual": 1500, "warna": "Hitam, Putih"},
        {"kode_barang": "SKU-2", "nama_barang": "Charger C", "stok_akhir": 4, "harga_beli": 45000, "harga_jual": 75000, "warna": ""},
    ]
