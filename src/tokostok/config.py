from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_HISTORY_TIMEOUT = 20.0


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    logs_dir: Path


@dataclass(frozen=True)
class Settings:
    stock_endpoint: Optional[str]
    sales_endpoint: Optional[str]
    purchases_endpoint: Optional[str]
    sales_history_endpoint: Optional[str]
    purchase_history_endpoint: Optional[str]
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    history_timeout: float = DEFAULT_HISTORY_TIMEOUT
    env: str = "development"

    @property
    def debug(self) -> bool:
        return self.env not in ("prod", "production")


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "TokoStok") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, logs_dir=logs)


def _text(env: Mapping[str, str], key: str) -> Optional[str]:
    value = (env.get(key) or "").strip()
    return value or None


def _seconds(env: Mapping[str, str], key: str, default: float) -> float:
    try:
        value = float(env.get(key, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Endpoints come from TOKOSTOK_* variables; unset ones stay None."""
    env = os.environ if env is None else env
    base = _text(env, "TOKOSTOK_WEBHOOK_URL")
    base = base.rstrip("/") if base else None

    def endpoint(key: str, path: Optional[str] = None) -> Optional[str]:
        explicit = _text(env, key)
        if explicit:
            return explicit
        if base and path:
            return f"{base}/{path}"
        return None

    return Settings(
        stock_endpoint=endpoint("TOKOSTOK_STOCK_ENDPOINT", "stok"),
        sales_endpoint=endpoint("TOKOSTOK_SALES_ENDPOINT", "penjualan"),
        purchases_endpoint=endpoint("TOKOSTOK_PURCHASES_ENDPOINT", "pembelian"),
        sales_history_endpoint=endpoint("TOKOSTOK_SALES_HISTORY_ENDPOINT"),
        purchase_history_endpoint=endpoint("TOKOSTOK_PURCHASE_HISTORY_ENDPOINT"),
        request_timeout=_seconds(env, "TOKOSTOK_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        history_timeout=_seconds(env, "TOKOSTOK_HISTORY_TIMEOUT", DEFAULT_HISTORY_TIMEOUT),
        env=(_text(env, "TOKOSTOK_ENV") or "development").lower(),
    )
