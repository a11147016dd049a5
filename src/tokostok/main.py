from __future__ import annotations

import logging
import sys

from tokostok.application.container import build_container
from tokostok.config import get_app_paths, load_settings
from tokostok.domain.errors import AppError
from tokostok.logging_config import setup_logging
from tokostok.services.ledger import stock_level
from tokostok.services.webhook_client import user_message

log = logging.getLogger(__name__)


def main() -> int:
    settings = load_settings()
    paths = get_app_paths()
    setup_logging(paths.logs_dir, level=logging.INFO, debug=settings.debug)

    container = build_container(settings)
    try:
        items = container.stock.refresh()
    except AppError as e:
        log.error("stock_refresh_failed error=%s", e)
        print(f"Error: {user_message(e)}", file=sys.stderr)
        return 1

    for it in items:
        colors = ", ".join(f"{v.name} ({v.qty:g})" for v in it.variant_stock) or "-"
        print(f"{it.kode:<12} {it.nama:<30} {it.qty:>8g}  [{stock_level(it.qty)}]  {colors}")

    s = container.stock.summary()
    print(f"\n{s.item_count} items, stock value {s.total_value:,.0f}, {s.low_stock_count} low")
    return 0


if __name__ == "__main__":
    sys.exit(main())
