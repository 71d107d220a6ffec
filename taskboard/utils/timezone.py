"""
UTC 시간 유틸리티

DB에는 timezone 정보 없는 UTC(naive) 값으로 저장한다.
"""
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """현재 UTC 시간 (naive)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """aware 시간은 UTC로 변환 후 tzinfo 제거, naive 시간은 UTC로 간주"""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """파일 경로 suffix 용 epoch milliseconds"""
    if dt is None:
        dt = now_utc()
    return int(to_naive_utc(dt).replace(tzinfo=timezone.utc).timestamp() * 1000)
