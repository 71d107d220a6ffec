"""Taskboard 테이블 생성 (동기 방식)

사용법:
    python create_tables.py            # 없는 테이블만 생성
    python create_tables.py --reset    # 전체 삭제 후 재생성
"""
import argparse

from sqlalchemy import create_engine

from taskboard.core.config import settings
from taskboard.core.database import Base
import taskboard.models  # noqa: F401  (모델 등록)


def sync_database_url(url: str) -> str:
    """비동기 드라이버 URL -> 동기 드라이버 URL"""
    return url.replace("+aiomysql", "+pymysql").replace("+aiosqlite", "")


def create_tables(reset: bool = False) -> None:
    engine = create_engine(sync_database_url(settings.DATABASE_URL), echo=True)
    try:
        if reset:
            print("Dropping Taskboard tables...")
            Base.metadata.drop_all(bind=engine)
        print("Creating Taskboard tables...")
        Base.metadata.create_all(bind=engine)
        print("Taskboard tables created!")
    finally:
        engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Taskboard 테이블 생성")
    parser.add_argument("--reset", action="store_true", help="기존 테이블 삭제 후 생성")
    args = parser.parse_args()
    create_tables(reset=args.reset)
