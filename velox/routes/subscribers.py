import logging
from datetime import datetime, timezone
from typing import Any
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from velox.dependencies import get_subscription_service, require_admin
from velox.schemas.subscribers import SubscriberCreatedOut, SubscriberOut
from velox.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

@router.post("/subscribe")
async def subscribe(
    payload: Any = Body(default=None),
    service: SubscriptionService = Depends(get_subscription_service)
):
    subscriber = await service.subscribe(payload if isinstance(payload, dict) else {})
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "message": "Successfully subscribed!",
            "data": SubscriberCreatedOut.model_validate(subscriber).model_dump(mode="json"),
        }
    )

@router.get("/subscribers", dependencies=[Depends(require_admin)])
async def list_subscribers(service: SubscriptionService = Depends(get_subscription_service)):
    subscribers = await service.list_subscribers()
    data = [SubscriberOut.model_validate(sub).model_dump(mode="json") for sub in subscribers]
    return {
        "success": True,
        "message": f"{len(data)} subscribers",
        "data": data,
        "count": len(data),
    }

@router.get("/subscribers/stats", dependencies=[Depends(require_admin)])
async def subscriber_stats(service: SubscriptionService = Depends(get_subscription_service)):
    stats = await service.stats()
    return {"success": True, "message": "Subscriber stats", "data": stats.model_dump()}

@router.post("/unsubscribe")
async def unsubscribe(
    payload: Any = Body(default=None),
    service: SubscriptionService = Depends(get_subscription_service)
):
    token = payload.get("token") if isinstance(payload, dict) else None
    await service.unsubscribe(token)
    return {"success": True, "message": "Successfully unsubscribed"}

@router.get("/health")
async def health_check():
    return {
        "success": True,
        "message": "Server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
