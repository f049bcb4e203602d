import secrets
from typing import AsyncGenerator, Optional
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from velox.core.config import Settings
from velox.core.errors import AuthError
from velox.db.session import Database
from velox.repositories.subscribers import SubscribersRepository
from velox.services.subscriptions import SubscriptionService

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_database(request: Request) -> Database:
    return request.app.state.db

async def get_db(db: Database = Depends(get_database)) -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting an async session scoped to the request."""
    async with db.session_factory() as session:
        yield session

async def get_subscribers_repo(session: AsyncSession = Depends(get_db)) -> SubscribersRepository:
    return SubscribersRepository(session)

async def get_subscription_service(
    sub_repo: SubscribersRepository = Depends(get_subscribers_repo),
    settings: Settings = Depends(get_settings)
) -> SubscriptionService:
    return SubscriptionService(sub_repo, token_max_attempts=settings.TOKEN_MAX_ATTEMPTS)

def require_admin(
    settings: Settings = Depends(get_settings),
    x_admin_key: Optional[str] = Header(default=None)
) -> None:
    """Checks the X-Admin-Key header when ADMIN_API_KEY is configured."""
    if not settings.ADMIN_API_KEY:
        return
    if not x_admin_key or not secrets.compare_digest(x_admin_key, settings.ADMIN_API_KEY):
        raise AuthError("Invalid or missing admin key")
