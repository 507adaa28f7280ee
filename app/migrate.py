import logging

from app.core.db import init_db, engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run_migrations():
    logger.info(f"Creating tables on {engine.url.render_as_string(hide_password=True)}")
    init_db()
    logger.info("✅ Tables created successfully.")


if __name__ == "__main__":
    run_migrations()
