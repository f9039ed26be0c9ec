"""Repair repository - Repair reads needed by notifications and cost summaries"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Client, ClientPhone, Repair, RepairPart


class RepairRepository:
    """Repository for repair database operations"""

    @staticmethod
    def get_repair(db: Session, repair_id: int) -> Optional[Repair]:
        return (
            db.query(Repair)
            .options(joinedload(Repair.client))
            .filter(Repair.id == repair_id)
            .first()
        )

    @staticmethod
    def get_repair_parts(db: Session, repair_id: int) -> list[RepairPart]:
        return (
            db.query(RepairPart)
            .filter(RepairPart.repair_id == repair_id)
            .order_by(RepairPart.id)
            .all()
        )

    @staticmethod
    def get_primary_phone(db: Session, client: Client) -> Optional[str]:
        """Primary number from the phone list, else the legacy client phone"""
        primary = (
            db.query(ClientPhone)
            .filter(ClientPhone.client_id == client.id, ClientPhone.is_primary.is_(True))
            .order_by(ClientPhone.id)
            .first()
        )
        if primary:
            return primary.phone_number
        return client.phone
