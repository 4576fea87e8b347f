"""
Report Delivery Database Initialization Script.

Creates the report delivery database (when missing) and its tables:
scheduled_reports, report_executions, presentations, report_templates and
slides. Safe to re-run: existing databases and tables are left untouched.

**Dependencies:**
    - PostgreSQL database server
    - Environment variables: POSTGRES_HOST, POSTGRES_PORT, POSTGRES_USER,
      POSTGRES_PASSWORD, POSTGRES_DB

**Example Usage:**
    ```bash
    python scripts/init_db.py
    ```

**Error Handling:**
    - Exits with code 0 on success
    - Exits with code 1 on failure (connection or SQL errors)
"""

from pathlib import Path
import sys

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

# Add the project's root directory to the Python path
sys.path.append(str(Path(__file__).parent.parent.resolve()))

from sqlalchemy import create_engine, text  # noqa: E402

from common.database import Base, create_sqlalchemy_url, get_database_name, get_engine  # noqa: E402
import common.models  # noqa: E402, F401  registers tables on Base.metadata


def create_database() -> None:
    """Create the service database when it does not exist yet."""
    db_name = get_database_name()
    engine = create_engine(create_sqlalchemy_url("postgres"), isolation_level="AUTOCOMMIT")
    try:
        with engine.connect() as connection:
            exists = connection.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": db_name}
            ).scalar()
            if exists:
                logger.info(f"Database '{db_name}' already exists.")
                return
            connection.execute(text(f'CREATE DATABASE "{db_name}"'))
            logger.info(f"Database '{db_name}' created successfully.")
    finally:
        engine.dispose()


def create_tables() -> None:
    """Create all report delivery tables in dependency order."""
    engine = get_engine("report-delivery-service")
    with engine.begin() as connection:
        # gen_random_uuid() is built in from PostgreSQL 13; pgcrypto covers older servers
        connection.execute(text("CREATE EXTENSION IF NOT EXISTS pgcrypto"))
    Base.metadata.create_all(engine)
    logger.info(f"✓ Tables ready: {', '.join(sorted(Base.metadata.tables))}")


def main() -> None:
    try:
        create_database()
        create_tables()
    except Exception as e:
        logger.error(f"✗ Error initializing database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    logger.add("logs/init_db.log", rotation="500 MB")
    main()
