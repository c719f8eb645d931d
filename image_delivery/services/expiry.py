"""expires 파라미터 검사.

형식: UTC ``YYYYMMDDTHHmmssZ`` (예: 19700102T120304Z).
만료 판정은 exclusive 입니다: expires 와 현재 시각이 같으면 아직 유효합니다.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Optional

from image_delivery.core.constants import EXPIRES_FORMAT
from image_delivery.core.exceptions import ExpiryFormatError, RequestExpiredError

_EXPIRES_RE = re.compile(r"\d{8}T\d{6}Z", re.ASCII)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_expires(value: str) -> datetime:
    """Parse a strict ``YYYYMMDDTHHmmssZ`` string into an aware UTC datetime."""
    if not _EXPIRES_RE.fullmatch(value):
        raise ExpiryFormatError()
    try:
        parsed = datetime.strptime(value, EXPIRES_FORMAT)
    except ValueError:
        raise ExpiryFormatError() from None
    return parsed.replace(tzinfo=timezone.utc)


def format_expires(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime(EXPIRES_FORMAT)


def check_expiry(expires: Optional[str], now: Optional[datetime] = None) -> None:
    """Reject malformed or past ``expires`` values; absent means no expiry.

    Raises:
        ExpiryFormatError: 형식 오류
        RequestExpiredError: now 가 expires 보다 뒤
    """
    if expires is None:
        return
    deadline = parse_expires(expires)
    current = now if now is not None else utc_now()
    # expires 는 초 단위 - 같은 초 안에서는 아직 유효
    if current.replace(microsecond=0) > deadline:
        raise RequestExpiredError()
