"""SMS repository - Database operations behind the inbound SMS webhook"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ...models import (
    Client,
    ClientPhone,
    Estimate,
    EstimateStatus,
    MessageDirection,
    MessageType,
    Repair,
    RepairStatus,
    SmsMessage,
)


@dataclass(frozen=True)
class ResolvedClient:
    id: int
    name: str
    sms_opted_in: bool


@dataclass(frozen=True)
class EstimateCandidate:
    """A pending estimate that a reply from this phone number would act on"""

    repair_id: int
    estimate_id: int


class SmsRepository:
    """Repository for SMS webhook database operations"""

    @staticmethod
    def find_client_by_phone(db: Session, phone: str) -> Optional[ResolvedClient]:
        """
        Resolve a normalized phone number to a client.

        The explicit phone list wins; the legacy clients.phone field is the
        fallback. Unknown numbers return None.
        """
        if not phone:
            return None

        client = (
            db.query(Client)
            .join(ClientPhone, ClientPhone.client_id == Client.id)
            .filter(ClientPhone.phone_number == phone)
            .order_by(ClientPhone.id)
            .first()
        )
        if not client:
            client = db.query(Client).filter(Client.phone == phone).order_by(Client.id).first()

        if not client:
            return None

        return ResolvedClient(id=client.id, name=client.name, sms_opted_in=bool(client.sms_opted_in))

    @staticmethod
    def set_sms_opt_in(db: Session, client_id: int, opted_in: bool) -> None:
        db.query(Client).filter(Client.id == client_id).update(
            {Client.sms_opted_in: opted_in}, synchronize_session=False
        )
        db.commit()

    @staticmethod
    def find_last_estimate_repair_id(db: Session, phone: str) -> Optional[int]:
        """Repair linked to the most recent outbound estimate text sent to this number"""
        message = (
            db.query(SmsMessage)
            .filter(
                SmsMessage.direction == MessageDirection.OUTBOUND,
                SmsMessage.message_type == MessageType.ESTIMATE,
                SmsMessage.to_number == phone,
            )
            .order_by(SmsMessage.created_at.desc(), SmsMessage.id.desc())
            .first()
        )
        return message.repair_id if message else None

    @staticmethod
    def find_latest_pending_estimate(db: Session, repair_id: int) -> Optional[Estimate]:
        query = db.query(Estimate).filter(
            Estimate.repair_id == repair_id,
            Estimate.status == EstimateStatus.PENDING,
        )
        return query.order_by(Estimate.created_at.desc(), Estimate.id.desc()).first()

    @classmethod
    def find_estimate_candidate(cls, db: Session, phone: str) -> Optional[EstimateCandidate]:
        """
        Find the estimate a YES/APPROVE/DENY reply from this number refers to.

        Returns None when no estimate text was sent to the number, the repair
        has moved past the estimate stage, or no estimate is still pending.
        """
        repair_id = cls.find_last_estimate_repair_id(db, phone)
        if not repair_id:
            return None

        repair = db.query(Repair).filter(Repair.id == repair_id).first()
        if not repair or repair.status not in RepairStatus.PRE_REPAIR:
            return None

        estimate = cls.find_latest_pending_estimate(db, repair_id)
        if not estimate:
            return None

        return EstimateCandidate(repair_id=repair_id, estimate_id=estimate.id)
