"""
Repair Notification Service
Texts customers the amount due on their repair and records what was sent
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from ..domain.repairs.costs import calculate_costs
from ..domain.repairs.repository import RepairRepository
from ..domain.sms.message_log import MessageLogger
from ..models import MessageType, Repair
from ..shared.validators import to_e164
from .twilio_service import TwilioMessagingClient

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a notification cannot be sent for a repair"""

    pass


class RepairNotFoundError(NotificationError):
    pass


class MissingPhoneError(NotificationError):
    pass


class NotificationNotRecordedError(NotificationError):
    """The text went out but its outbound log row could not be written"""

    def __init__(self, message: str, message_sid: Optional[str] = None):
        super().__init__(message)
        self.message_sid = message_sid


@dataclass(frozen=True)
class SentNotification:
    repair_id: int
    message_sid: Optional[str]
    to_phone: str
    amount_due: Decimal
    body: str


def _unit_label(repair: Repair) -> str:
    return " ".join(part for part in (repair.brand, repair.model) if part) or "unit"


def estimate_text(repair: Repair, client_name: str, amount_due: Decimal, shop_phone: str) -> str:
    return (
        f"Hello {client_name}, your estimate for your {_unit_label(repair)} is "
        f"${amount_due:.2f}. Reply YES to approve or DENY to decline, "
        f"or call {shop_phone} with questions."
    )


def pickup_text(repair: Repair, client_name: str, amount_due: Decimal) -> str:
    return (
        f"Hello {client_name}, your {_unit_label(repair)} is ready! "
        f"Total: ${amount_due:.2f}. M-F 10-6."
    )


async def _send_repair_text(
    db: Session,
    messaging_client: TwilioMessagingClient,
    repair_id: int,
    message_type: str,
    shop_phone: str,
) -> SentNotification:
    repo = RepairRepository()

    repair = repo.get_repair(db, repair_id)
    if not repair:
        raise RepairNotFoundError(f"Repair {repair_id} not found")

    client = repair.client
    to_phone = to_e164(repo.get_primary_phone(db, client)) if client else None
    if not to_phone:
        raise MissingPhoneError("Client has no phone number")

    costs = calculate_costs(repair, repo.get_repair_parts(db, repair_id))

    if message_type == MessageType.ESTIMATE:
        body = estimate_text(repair, client.name, costs.amount_due, shop_phone)
    else:
        body = pickup_text(repair, client.name, costs.amount_due)

    logger.info(f"📱 Preparing SMS: type={message_type}, repair={repair_id}, to={to_phone}")
    message_sid = await messaging_client.send_sms(to_phone, body)

    # The estimate row is what later ties a YES reply back to this repair
    logged = MessageLogger(db).record_outbound(
        message_sid=message_sid,
        from_number=messaging_client.from_number,
        to_number=to_phone,
        body=body,
        message_type=message_type,
        client_id=client.id,
        repair_id=repair_id,
    )
    if logged is None:
        logger.error(
            f"❌ SMS {message_sid} sent for repair {repair_id} but not recorded; replies will not match it"
        )
        raise NotificationNotRecordedError("SMS sent but not recorded", message_sid=message_sid)

    return SentNotification(
        repair_id=repair_id,
        message_sid=message_sid,
        to_phone=to_phone,
        amount_due=costs.amount_due,
        body=body,
    )


async def send_estimate_text(
    db: Session, messaging_client: TwilioMessagingClient, repair_id: int, shop_phone: str
) -> SentNotification:
    """Text the customer the estimated amount due and ask for approval"""
    return await _send_repair_text(db, messaging_client, repair_id, MessageType.ESTIMATE, shop_phone)


async def send_pickup_text(
    db: Session, messaging_client: TwilioMessagingClient, repair_id: int, shop_phone: str
) -> SentNotification:
    """Text the customer that the unit is ready with the final amount due"""
    return await _send_repair_text(db, messaging_client, repair_id, MessageType.PICKUP, shop_phone)
