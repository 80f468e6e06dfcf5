import importlib
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from foodcart.config import settings
from foodcart.utils.log import get_logger

log = get_logger("db")

DATABASE_URL = settings.DATABASE_URL
engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=False,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# model modules must be imported before create_all so metadata is populated
MODEL_MODULES = [
    "foodcart.models.cart",
    "foodcart.models.cart_item",
]


def init_db(reset: bool = False, bind=None):
    """
    Initialize the guest cart schema.

    Behavior:
      - If `reset` is True or RESET_DB env var is 1/true/yes, drop & recreate tables.
      - Otherwise, leave existing tables in place.
    """
    bind = bind or engine
    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset or env_reset:
        log.info("Resetting guest cart tables")
        Base.metadata.drop_all(bind=bind)

    Base.metadata.create_all(bind=bind)
    log.debug("Database initialized at %s", bind.url)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
