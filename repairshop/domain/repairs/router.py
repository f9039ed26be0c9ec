"""Repair router - Cost summary and customer text notifications"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ... import config
from ...database import get_db
from ...services.notification_service import (
    MissingPhoneError,
    NotificationNotRecordedError,
    RepairNotFoundError,
    SentNotification,
    send_estimate_text,
    send_pickup_text,
)
from ...services.twilio_service import MessagingError, TwilioMessagingClient
from .costs import calculate_costs
from .repository import RepairRepository
from .schemas import CostSummaryResponse, NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/repairs", tags=["Repairs"])


def get_messaging_client(request: Request) -> Optional[TwilioMessagingClient]:
    """Dependency for the outbound SMS client built at startup"""
    return getattr(request.app.state, "messaging_client", None)


def _require_client(messaging_client: Optional[TwilioMessagingClient]) -> TwilioMessagingClient:
    if messaging_client is None:
        raise HTTPException(status_code=503, detail="SMS is not configured")
    return messaging_client


def _to_response(sent: SentNotification) -> NotificationResponse:
    return NotificationResponse(
        repair_id=sent.repair_id,
        message_sid=sent.message_sid,
        to=sent.to_phone,
        amount_due=float(sent.amount_due),
    )


@router.get("/{repair_id}/costs", response_model=CostSummaryResponse)
async def get_repair_costs(repair_id: int, db: Session = Depends(get_db)):
    """Get the cost breakdown and amount due for a repair"""
    repo = RepairRepository()
    repair = repo.get_repair(db, repair_id)
    if not repair:
        raise HTTPException(status_code=404, detail="Repair not found")

    costs = calculate_costs(repair, repo.get_repair_parts(db, repair_id))
    return CostSummaryResponse(repair_id=repair_id, **costs.as_dict())


@router.post("/{repair_id}/text-estimate", response_model=NotificationResponse)
async def text_estimate(
    repair_id: int,
    db: Session = Depends(get_db),
    messaging_client: Optional[TwilioMessagingClient] = Depends(get_messaging_client),
):
    """Text the customer their estimate and ask them to reply YES or DENY"""
    client = _require_client(messaging_client)
    try:
        sent = await send_estimate_text(db, client, repair_id, config.SHOP_PHONE)
    except RepairNotFoundError:
        raise HTTPException(status_code=404, detail="Repair not found")
    except MissingPhoneError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotificationNotRecordedError as e:
        raise HTTPException(status_code=500, detail=f"{e} (SID: {e.message_sid})")
    except MessagingError as e:
        logger.error(f"❌ Estimate SMS failed for repair {repair_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to send SMS: {e}")
    return _to_response(sent)


@router.post("/{repair_id}/text-pickup", response_model=NotificationResponse)
async def text_pickup(
    repair_id: int,
    db: Session = Depends(get_db),
    messaging_client: Optional[TwilioMessagingClient] = Depends(get_messaging_client),
):
    """Text the customer that their unit is ready for pickup"""
    client = _require_client(messaging_client)
    try:
        sent = await send_pickup_text(db, client, repair_id, config.SHOP_PHONE)
    except RepairNotFoundError:
        raise HTTPException(status_code=404, detail="Repair not found")
    except MissingPhoneError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotificationNotRecordedError as e:
        raise HTTPException(status_code=500, detail=f"{e} (SID: {e.message_sid})")
    except MessagingError as e:
        logger.error(f"❌ Pickup SMS failed for repair {repair_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to send SMS: {e}")
    return _to_response(sent)
