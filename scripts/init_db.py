import argparse
import asyncio
import sys
import os
import logging

# Add project root to path
sys.path.append(os.getcwd())

from velox.core.config import settings
from velox.core.errors import ConflictError
from velox.core.logging_config import setup_logging
from velox.db.session import Database
from velox.repositories.subscribers import SubscribersRepository
from velox.services.subscriptions import SubscriptionService

setup_logging()
logger = logging.getLogger(__name__)

SAMPLE_SUBSCRIBERS = [
    ("John Doe", "john.doe@example.com"),
    ("Jane Smith", "jane.smith@example.com"),
    ("Mike Johnson", "mike.johnson@example.com"),
]

async def seed(db: Database) -> int:
    """Inserts the sample subscribers, skipping emails already present. Returns how many were added."""
    added = 0
    async with db.session_factory() as session:
        service = SubscriptionService(SubscribersRepository(session), token_max_attempts=settings.TOKEN_MAX_ATTEMPTS)
        for name, email in SAMPLE_SUBSCRIBERS:
            try:
                await service.subscribe({"name": name, "email": email})
                logger.info(f"Added sample subscriber: {name}")
                added += 1
            except ConflictError:
                logger.info(f"Sample subscriber already present: {email}")
    return added

async def main(with_seed: bool):
    logger.info("Starting manual database initialization...")
    db = Database(settings.DATABASE_URL)
    try:
        # Tables and indexes come from the model metadata
        await db.create_all()
        if with_seed:
            added = await seed(db)
            logger.info(f"Seeded {added} sample subscribers.")
    finally:
        await db.dispose()
    logger.info("DB Initialization complete.")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the subscribers schema")
    parser.add_argument("--seed", action="store_true", help="Insert sample subscribers")
    args = parser.parse_args()
    asyncio.run(main(args.seed))
