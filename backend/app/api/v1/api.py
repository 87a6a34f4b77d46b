# backend/app/api/v1/api.py
"""
LookAround API Router
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.api.v1 import (
    properties,  # 숙소/객실 관리
    listings,  # 달력용 리스팅
    bookings,  # 예약
    blocks,  # 차단
    calendar,  # 가용성 그리드
    ical,  # iCal 동기화 / export
)

api_router = APIRouter()

api_router.include_router(properties.router)
api_router.include_router(listings.router)
api_router.include_router(bookings.router)
api_router.include_router(blocks.router)
api_router.include_router(calendar.router)
api_router.include_router(ical.router)


# ============================================================
# Scheduler API (관리용)
# ============================================================

class SchedulerStatusResponse(BaseModel):
    running: bool
    interval_minutes: int | None
    next_run: str | None


@api_router.get("/scheduler/status", response_model=SchedulerStatusResponse, tags=["Scheduler"])
def get_scheduler_status():
    """스케줄러 상태 조회"""
    from app.core.config import settings
    from app.services.scheduler import ICAL_SYNC_JOB_ID, get_scheduler

    scheduler = get_scheduler()
    if scheduler is None:
        return SchedulerStatusResponse(running=False, interval_minutes=None, next_run=None)

    job = scheduler.get_job(ICAL_SYNC_JOB_ID)
    next_run = None
    if job and job.next_run_time:
        next_run = job.next_run_time.isoformat()

    return SchedulerStatusResponse(
        running=scheduler.running,
        interval_minutes=settings.ICAL_SYNC_INTERVAL_MINUTES,
        next_run=next_run,
    )


@api_router.post("/scheduler/run-now", tags=["Scheduler"])
async def run_scheduler_now():
    """iCal 동기화 Job 즉시 실행"""
    from app.services.scheduler import ical_sync_job

    try:
        stats = await ical_sync_job()
        return {"status": "ok", "stats": stats}
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
