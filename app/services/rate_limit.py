from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import BigInteger, case, delete, literal
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import RateLimitRule, settings
from app.core.db import dialect_insert
from app.core.time import now_ms
from app.models.rate_limit import RateLimit
from app.services.errors import ValidationError


logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    retry_after: Optional[int] = None  # секунды


def rate_limit_key(category: str, identifier: str) -> str:
    return f"ratelimit:{category}:{identifier}"


def get_rule(category: str) -> RateLimitRule:
    rule = settings.RATE_LIMITS.get(category)
    if rule is None:
        raise ValidationError(f"Unknown rate limit category: {category}")
    return rule


async def check_rate_limit(
    session: AsyncSession,
    category: str,
    identifier: str,
    *,
    now: Optional[int] = None,
) -> RateLimitResult:
    """
    Фиксированное окно на ключ (category, identifier).

    Один атомарный upsert: истёкшее окно сбрасывается в count=1, иначе count+1.
    Пропускаем, если после инкремента count <= max_attempts. Всплески на границе
    окна допускаются — это свойство фиксированного окна.
    """
    rule = get_rule(category)
    now = now_ms() if now is None else now
    key = rate_limit_key(category, identifier)
    fresh_reset_at = now + rule.window_ms

    table = RateLimit.__table__
    insert = dialect_insert(session)
    stmt = insert(table).values(key=key, count=1, reset_at=fresh_reset_at)
    expired = table.c.reset_at <= now
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.key],
        set_={
            "count": case((expired, 1), else_=table.c.count + 1),
            "reset_at": case((expired, literal(fresh_reset_at, BigInteger)), else_=table.c.reset_at),
        },
    ).returning(table.c.count, table.c.reset_at)

    row = (await session.execute(stmt)).one()
    await session.commit()

    count, reset_at = row
    if count <= rule.max_attempts:
        return RateLimitResult(allowed=True)

    retry_after = max(1, math.ceil((reset_at - now) / 1000))
    logger.warning("Rate limit hit: %s (retry in %ss)", key, retry_after)
    return RateLimitResult(allowed=False, retry_after=retry_after)


async def reset_rate_limit(session: AsyncSession, category: str, identifier: str) -> None:
    await session.execute(delete(RateLimit).where(RateLimit.key == rate_limit_key(category, identifier)))
    await session.commit()
