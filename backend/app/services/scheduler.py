# backend/app/services/scheduler.py
"""
iCal Sync Scheduler (APScheduler 기반)

ICAL_SYNC_INTERVAL_MINUTES 마다 등록된 모든 iCal 피드를 동기화합니다.

사용법:
    from app.services.scheduler import start_scheduler, shutdown_scheduler

    # FastAPI lifespan에서
    start_scheduler()
    ...
    shutdown_scheduler()
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings

# 로거 설정
logger = logging.getLogger("lookaround.scheduler")
logger.setLevel(logging.INFO)

# 콘솔 핸들러 추가 (서버 로그에 출력)
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s [SCHEDULER] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

ICAL_SYNC_JOB_ID = "ical_sync_job"

# 전역 스케줄러 인스턴스
_scheduler: Optional[AsyncIOScheduler] = None


async def ical_sync_job() -> dict[str, int]:
    """
    iCal Sync Job

    - 등록된 모든 피드 fetch
    - 새 UID 만 Booking 으로 import
    - 피드별 실패는 로그만 남기고 다음 피드 진행

    Returns:
        {"feeds": n, "imported": n, "skipped": n, "failed": n}
    """
    from app.db.session import session_scope
    from app.services.ical_service import IcalFetchError, IcalService

    start_time = datetime.now(timezone.utc)
    logger.info(f"iCal Sync Job 시작 ({start_time.isoformat()})")

    stats = {"feeds": 0, "imported": 0, "skipped": 0, "failed": 0}

    with session_scope() as db:
        results = await IcalService(db).sync_all()

    for feed_id, result in results.items():
        stats["feeds"] += 1
        if isinstance(result, IcalFetchError):
            stats["failed"] += 1
            logger.warning(f"  [{feed_id}] fetch 실패: {result.reason}")
            continue
        stats["imported"] += result.imported
        stats["skipped"] += result.skipped

    elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(
        f"iCal Sync Job 완료 ({elapsed:.1f}s) "
        f"feeds={stats['feeds']} imported={stats['imported']} "
        f"skipped={stats['skipped']} failed={stats['failed']}"
    )
    return stats


def start_scheduler(interval_minutes: Optional[int] = None) -> Optional[AsyncIOScheduler]:
    """스케줄러 시작 (ICAL_SYNC_ENABLED 가 꺼져 있으면 아무것도 안 함)"""
    global _scheduler

    if not settings.ICAL_SYNC_ENABLED:
        logger.info("iCal 주기 동기화 비활성화 (ICAL_SYNC_ENABLED=false)")
        return None

    if _scheduler is not None and _scheduler.running:
        return _scheduler

    minutes = interval_minutes or settings.ICAL_SYNC_INTERVAL_MINUTES

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        ical_sync_job,
        trigger=IntervalTrigger(minutes=minutes),
        id=ICAL_SYNC_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    logger.info(f"스케줄러 시작: {minutes}분 간격 iCal 동기화")
    return _scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("스케줄러 종료")
    _scheduler = None


def get_scheduler() -> Optional[AsyncIOScheduler]:
    return _scheduler
