from __future__ import annotations
import logging
from contextlib import contextmanager
from sqlmodel import SQLModel, Session, create_engine

from .config import default_db_path

logger = logging.getLogger(__name__)

_ENGINE = None
_ENGINE_URL = None  # track current engine's URL so we can switch when env changes


def _compute_url() -> str:
    db_path = default_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"


def get_engine():
    global _ENGINE, _ENGINE_URL
    url = _compute_url()
    if _ENGINE is None or _ENGINE_URL != url:
        # swap engine if SIMPLENOTES_DB_PATH changed (common in tests)
        if _ENGINE is not None:
            _ENGINE.dispose()
        # the coalescer writes from its timer thread
        _ENGINE = create_engine(url, echo=False, connect_args={"check_same_thread": False})
        _ENGINE_URL = url
        logger.debug("Opened note database at %s", url)
    return _ENGINE


def reset_engine():
    """For tests: drop the cached engine so a new SIMPLENOTES_DB_PATH is picked up."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


def init_db():
    engine = get_engine()
    SQLModel.metadata.create_all(engine)


def get_session():
    return Session(get_engine(), expire_on_commit=False)


@contextmanager
def session_scope():
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
