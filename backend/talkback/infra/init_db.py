# talkback/infra/init_db.py

import argparse
import logging

from sqlalchemy import inspect

from talkback.infra.postgres import check_connection, engine
from talkback.models.base import Base
from talkback.models.message import Message  # noqa: F401  registers the table
from talkback.models.user import User  # noqa: F401  registers the table

logger = logging.getLogger(__name__)


def init_db(drop: bool = False) -> list[str]:
    """Create all tables, dropping them first when *drop* is set"""
    if drop:
        logger.warning("Dropping all tables")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)

    tables = inspect(engine).get_table_names()
    logger.info(f"Database ready, tables: {tables}")
    return tables


if __name__ == "__main__":
    from talkback.utils.logger import setup_logger

    parser = argparse.ArgumentParser(description="Create the talkback tables")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    setup_logger()
    if check_connection():
        init_db(drop=args.drop)
