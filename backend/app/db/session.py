# backend/app/db/session.py

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.db.base import Base


def _connect_args(url: str) -> dict:
    # sqlite 는 스레드 간 커넥션 공유를 막고 있어서 풀어줘야 한다 (로컬 개발용)
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    future=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


def init_db() -> None:
    """
    앱 시작 시 한 번 호출해서 숙소/객실/예약/차단/iCal 피드 테이블 생성.
    운영 DB 스키마 변경은 alembic revision 으로 관리한다.
    """
    import app.domain.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    요청 밖(스케줄러, 백그라운드 동기화)에서 쓰는 세션.
    정상 종료 시 commit, 예외 시 rollback.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
