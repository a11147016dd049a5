from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Callable, Optional

from tokostok.domain.policies import PURCHASE_ID_PREFIX, SALE_ID_PREFIX


def generate_id(
    prefix: str,
    now: Optional[datetime] = None,
    rand: Callable[[int, int], int] = random.randint,
) -> str:
    """``{PREFIX}-{YYYYMMDD}-{NNNN}``.

    The suffix mixes the clock's low-order milliseconds with a random number so
    rapid calls on the same day rarely collide. The date is the UTC date, matching
    the ``created_at`` stamp sent with the transaction. Not globally unique; the
    webhook remains the system of record.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    millis = int(now.timestamp() * 1000)
    suffix = (millis % 10000 + rand(0, 9999)) % 10000
    return f"{prefix.upper()}-{now:%Y%m%d}-{suffix:04d}"


def generate_sale_id(now: Optional[datetime] = None) -> str:
    return generate_id(SALE_ID_PREFIX, now=now)


def generate_purchase_id(now: Optional[datetime] = None) -> str:
    return generate_id(PURCHASE_ID_PREFIX, now=now)
