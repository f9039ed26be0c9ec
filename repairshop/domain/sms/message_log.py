"""SMS message log - append-only record of every text in and out"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import MessageDirection, SmsMessage
from ...shared.validators import normalize_phone

logger = logging.getLogger(__name__)


class MessageLogger:
    """
    Writes sms_messages rows. Each record commits on its own; a failed write
    is logged and rolled back but never raised.
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        *,
        direction: str,
        from_number: Optional[str],
        to_number: Optional[str],
        body: Optional[str],
        message_type: str,
        message_sid: Optional[str] = None,
        client_id: Optional[int] = None,
        repair_id: Optional[int] = None,
    ) -> Optional[SmsMessage]:
        message = SmsMessage(
            message_sid=message_sid or None,
            direction=direction,
            from_number=normalize_phone(from_number),
            to_number=normalize_phone(to_number),
            body=body,
            client_id=client_id,
            repair_id=repair_id,
            message_type=message_type,
        )
        try:
            self.db.add(message)
            self.db.commit()
            self.db.refresh(message)
            return message
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to log {direction} {message_type} SMS (sid={message_sid}): {e}")
            return None

    def record_inbound(
        self,
        *,
        from_number: Optional[str],
        to_number: Optional[str],
        body: Optional[str],
        message_type: str,
        message_sid: Optional[str] = None,
        client_id: Optional[int] = None,
        repair_id: Optional[int] = None,
    ) -> Optional[SmsMessage]:
        return self._record(
            direction=MessageDirection.INBOUND,
            from_number=from_number,
            to_number=to_number,
            body=body,
            message_type=message_type,
            message_sid=message_sid,
            client_id=client_id,
            repair_id=repair_id,
        )

    def record_outbound(
        self,
        *,
        from_number: Optional[str],
        to_number: Optional[str],
        body: Optional[str],
        message_type: str,
        message_sid: Optional[str] = None,
        client_id: Optional[int] = None,
        repair_id: Optional[int] = None,
    ) -> Optional[SmsMessage]:
        return self._record(
            direction=MessageDirection.OUTBOUND,
            from_number=from_number,
            to_number=to_number,
            body=body,
            message_type=message_type,
            message_sid=message_sid,
            client_id=client_id,
            repair_id=repair_id,
        )
