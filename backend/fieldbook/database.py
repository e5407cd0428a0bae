import os
from pathlib import Path
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./fieldbook.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def _make_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=SQL_ECHO)
    if ":memory:" not in url:
        Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
    # FastAPI runs sync endpoints on a thread pool
    return create_engine(url, echo=SQL_ECHO, connect_args={"check_same_thread": False})


engine: Engine = _make_engine(DATABASE_URL)


def get_session() -> Generator[Session, None, None]:
    """Request-scoped session dependency"""
    with Session(engine) as session:
        yield session


def import_models() -> None:
    """Register every table on SQLModel.metadata"""
    from fieldbook.models.complex import Complex  # noqa: F401
    from fieldbook.models.complex_service import ComplexService  # noqa: F401
    from fieldbook.models.price_rule import PriceRule  # noqa: F401
    from fieldbook.models.reservation import Reservation  # noqa: F401
    from fieldbook.models.review import Review  # noqa: F401
    from fieldbook.models.service import Service  # noqa: F401
    from fieldbook.models.sports_field import SportsField  # noqa: F401
    from fieldbook.models.user import User  # noqa: F401


def init_db() -> None:
    """Create missing tables; existing ones are left untouched"""
    import_models()
    SQLModel.metadata.create_all(engine)
