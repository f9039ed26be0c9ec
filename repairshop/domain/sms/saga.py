"""
Estimate approval saga

Applies a customer's SMS decision on an estimate across the estimate, its
siblings, the repair, the repair's line items and its notes.

All writes for one decision run in a single transaction. The estimate row is
re-read with SELECT ... FOR UPDATE and must still be pending, so a provider
retry or a second YES that races the first finds nothing to apply instead of
adding a second parts line and note. Any database error rolls the whole
decision back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import (
    Estimate,
    EstimateStatus,
    Repair,
    RepairNote,
    RepairPart,
    RepairStatus,
)

logger = logging.getLogger(__name__)

SYSTEM_AUTHOR = "System"
TECHNICIAN_AUTHOR = "Technician"
APPROVED_PARTS_LINE_NAME = "Approved Estimate Parts"


@dataclass(frozen=True)
class EstimateDecision:
    """What was applied, for the confirmation reply and the message log"""

    repair_id: int
    estimate_id: int
    brand: Optional[str]
    model: Optional[str]
    claim_number: Optional[str]
    total_cost: Decimal


class EstimateApprovalSaga:
    """Applies approve/decline decisions received by SMS"""

    def __init__(self, db: Session):
        self.db = db

    def _lock_pending_estimate(self, repair_id: int, estimate_id: int) -> Optional[Estimate]:
        return (
            self.db.query(Estimate)
            .filter(
                Estimate.id == estimate_id,
                Estimate.repair_id == repair_id,
                Estimate.status == EstimateStatus.PENDING,
            )
            .with_for_update()
            .first()
        )

    def approve(self, repair_id: int, estimate_id: int) -> Optional[EstimateDecision]:
        """
        Approve an estimate and start the repair.

        Returns None, with nothing written, when the estimate is no longer
        pending or the repair is missing.

        Raises:
            SQLAlchemyError: After rolling back, if any write fails
        """
        try:
            estimate = self._lock_pending_estimate(repair_id, estimate_id)
            repair = self.db.query(Repair).filter(Repair.id == repair_id).first()
            if not estimate or not repair:
                self.db.rollback()
                logger.info(
                    f"ℹ️ Estimate {estimate_id} on repair {repair_id} is no longer pending, nothing to approve"
                )
                return None

            now = datetime.utcnow()

            # 1. Approve this estimate
            estimate.status = EstimateStatus.APPROVED
            estimate.approved_date = now
            estimate.notified_date = now

            # 2. Decline the other open options on the same repair
            (
                self.db.query(Estimate)
                .filter(
                    Estimate.repair_id == repair_id,
                    Estimate.id != estimate.id,
                    Estimate.status.notin_(EstimateStatus.FINAL),
                )
                .update(
                    {Estimate.status: EstimateStatus.DECLINED, Estimate.notified_date: now},
                    synchronize_session=False,
                )
            )

            # 3. Estimate labor becomes the billed labor
            repair.status = RepairStatus.REPAIRING
            repair.labor_cost = estimate.labor_cost

            # 4. Parts cost becomes a billable line without touching inventory
            if estimate.parts_cost and estimate.parts_cost > 0:
                self.db.add(
                    RepairPart(
                        repair_id=repair_id,
                        part_id=None,
                        name=APPROVED_PARTS_LINE_NAME,
                        quantity=1,
                        unit_price=estimate.parts_cost,
                    )
                )

            # 5. Audit note
            self.db.add(
                RepairNote(
                    repair_id=repair_id,
                    author=SYSTEM_AUTHOR,
                    text=f"Estimate #{estimate.id} approved via SMS. Status set to Repairing.",
                )
            )

            decision = EstimateDecision(
                repair_id=repair_id,
                estimate_id=estimate.id,
                brand=repair.brand,
                model=repair.model,
                claim_number=repair.claim_number,
                total_cost=estimate.labor_cost + estimate.parts_cost,
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"❌ Estimate approval failed for repair {repair_id}, rolled back")
            raise

        logger.info(f"✅ Estimate {estimate_id} approved via SMS for repair {repair_id}")
        return decision

    def decline(self, repair_id: int, estimate_id: int) -> Optional[EstimateDecision]:
        """
        Decline an estimate. The unit goes back to repairing so it can be
        reassembled before pickup.

        Returns None, with nothing written, when the estimate is no longer pending.
        """
        try:
            estimate = self._lock_pending_estimate(repair_id, estimate_id)
            repair = self.db.query(Repair).filter(Repair.id == repair_id).first()
            if not estimate or not repair:
                self.db.rollback()
                return None

            now = datetime.utcnow()

            estimate.status = EstimateStatus.DECLINED
            estimate.notified_date = now

            repair.status = RepairStatus.REPAIRING

            self.db.add(
                RepairNote(
                    repair_id=repair_id,
                    author=TECHNICIAN_AUTHOR,
                    text=(
                        f"Customer sent a text denying the repair for Claim #{repair.claim_number}. "
                        f"Estimate #{estimate.id} declined. Unit needs to be reassembled before pickup."
                    ),
                )
            )

            decision = EstimateDecision(
                repair_id=repair_id,
                estimate_id=estimate.id,
                brand=repair.brand,
                model=repair.model,
                claim_number=repair.claim_number,
                total_cost=estimate.labor_cost + estimate.parts_cost,
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(f"❌ Estimate decline failed for repair {repair_id}, rolled back")
            raise

        logger.info(f"✅ Estimate {estimate_id} declined via SMS for repair {repair_id}")
        return decision
