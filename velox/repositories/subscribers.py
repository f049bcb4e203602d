import logging
from typing import List, Optional
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from velox.core.errors import StoreError
from velox.models.subscribers import Subscriber

logger = logging.getLogger(__name__)

class SubscribersRepository:
    def __init__(self, session: AsyncSession):
        self.session = session
        # Table creation is handled by Database.create_all at startup

    async def get_all(self) -> List[Subscriber]:
        """Retrieves every subscriber, newest first."""
        try:
            stmt = (
                select(Subscriber)
                .order_by(Subscriber.subscribed_at.desc(), Subscriber.id.desc())
                .execution_options(populate_existing=True)
            )
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching subscribers: {e}")
            raise StoreError("Failed to fetch subscribers") from e

    async def get_by_email(self, email: str) -> Optional[Subscriber]:
        try:
            result = await self.session.execute(select(Subscriber).where(Subscriber.email == email))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error looking up subscriber {email}: {e}")
            raise StoreError() from e

    async def exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def add(self, name: str, email: str, unsubscribe_token: str) -> Subscriber:
        """
        Inserts and commits a subscriber.
        Unique violations (email or token) roll back and propagate as IntegrityError.
        """
        new_sub = Subscriber(name=name, email=email, unsubscribe_token=unsubscribe_token)
        try:
            self.session.add(new_sub)
            await self.session.commit()
            return new_sub
        except IntegrityError:
            await self.session.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error adding subscriber {email}: {e}")
            await self.session.rollback()
            raise StoreError("Failed to subscribe") from e

    async def deactivate_by_token(self, token: str) -> bool:
        """Flips is_active to False for the active row holding `token`. Returns True if a row changed."""
        try:
            stmt = (
                update(Subscriber)
                .where(Subscriber.unsubscribe_token == token, Subscriber.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deactivating subscriber by token: {e}")
            await self.session.rollback()
            raise StoreError("Failed to unsubscribe") from e

    async def count(self, active: Optional[bool] = None) -> int:
        try:
            stmt = select(func.count(Subscriber.id))
            if active is not None:
                stmt = stmt.where(Subscriber.is_active.is_(active))
            result = await self.session.execute(stmt)
            return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting subscribers: {e}")
            raise StoreError("Failed to count subscribers") from e
