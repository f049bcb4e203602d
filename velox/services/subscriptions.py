import logging
import secrets
from typing import Any, Dict, List, Mapping, Optional
import pydantic
from sqlalchemy.exc import IntegrityError

from velox.core.errors import ConflictError, NotFoundError, StoreError, ValidationError
from velox.models.subscribers import Subscriber
from velox.repositories.subscribers import SubscribersRepository
from velox.schemas.subscribers import SubscribeRequest, SubscriberStats

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_unsubscribe_token() -> str:
    """32 random bytes from the OS CSPRNG, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)


def validation_errors(exc) -> List[Dict[str, str]]:
    """Flattens pydantic (or FastAPI request) validation errors into one {field, message} entry per violation."""
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        message = error["msg"]
        # Custom validator messages arrive prefixed by pydantic
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message})
    return errors


class SubscriptionService:
    def __init__(self, subscribers_repository: SubscribersRepository, token_max_attempts: int = 3):
        self.subscribers_repo = subscribers_repository
        self.token_max_attempts = token_max_attempts

    async def subscribe(self, payload: Mapping[str, Any]) -> Subscriber:
        """
        Validates and stores a new subscriber.
        Validation covers the whole payload before the store is touched.
        The email unique constraint decides races between concurrent subscribes.
        """
        try:
            request = SubscribeRequest.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(validation_errors(e)) from e

        if await self.subscribers_repo.exists(request.email):
            raise ConflictError("This email is already subscribed")

        for attempt in range(1, self.token_max_attempts + 1):
            token = generate_unsubscribe_token()
            try:
                subscriber = await self.subscribers_repo.add(request.name, request.email, token)
            except IntegrityError as e:
                # Lost a race on the email, or drew a token that already exists
                if await self.subscribers_repo.exists(request.email):
                    logger.info(f"Concurrent subscribe lost race for {request.email}")
                    raise ConflictError("This email is already subscribed") from e
                logger.warning(f"Unsubscribe token collision (attempt {attempt}/{self.token_max_attempts})")
                continue

            logger.info(f"New subscriber #{subscriber.id}: {subscriber.email}")
            return subscriber

        logger.error(f"Could not allocate a unique unsubscribe token for {request.email}")
        raise StoreError("Failed to subscribe")

    async def list_subscribers(self) -> List[Subscriber]:
        return await self.subscribers_repo.get_all()

    async def unsubscribe(self, token: Optional[Any]) -> None:
        """Deactivates the active subscriber owning `token`. Unknown and used tokens look the same."""
        if not isinstance(token, str) or not token.strip():
            raise ValidationError(
                [{"field": "token", "message": "Unsubscribe token is required"}],
                message="Unsubscribe token is required",
            )

        if not await self.subscribers_repo.deactivate_by_token(token):
            raise NotFoundError("Invalid or expired unsubscribe token")

        logger.info("Subscriber deactivated by token")

    async def stats(self) -> SubscriberStats:
        total = await self.subscribers_repo.count()
        active = await self.subscribers_repo.count(active=True)
        return SubscriberStats(total=total, active=active, inactive=total - active)
