from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_session
from app.services.errors import RateLimited
from app.services.rate_limit import check_rate_limit


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limited(category: str):
    """Dependency-фабрика: 429 + Retry-After, если лимит категории исчерпан для IP."""

    async def _check(request: Request, session: AsyncSession = Depends(get_session)) -> str:
        ip = client_ip(request)
        result = await check_rate_limit(session, category, ip)
        if not result.allowed:
            raise RateLimited(result.retry_after or 1)
        return ip

    return _check
