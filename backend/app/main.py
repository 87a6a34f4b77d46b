import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.api import api_router
from app.db.session import init_db
from app.services.scheduler import shutdown_scheduler, start_scheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI Lifespan - 앱 시작/종료 시 실행
    """
    # Startup (ICAL_SYNC_ENABLED 일 때만 실제로 뜬다)
    start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()


def create_app() -> FastAPI:
    app = FastAPI(
        title="LookAround Backend",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # DB 초기화
    init_db()

    # v1 REST API
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()
