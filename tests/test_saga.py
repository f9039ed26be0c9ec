from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from repairshop.domain.sms.saga import (
    APPROVED_PARTS_LINE_NAME,
    SYSTEM_AUTHOR,
    TECHNICIAN_AUTHOR,
    EstimateApprovalSaga,
)
from repairshop.models import Estimate, EstimateStatus, Repair, RepairNote, RepairPart, RepairStatus


@pytest.fixture
def repair_with_estimate(make_client, make_repair, make_estimate):
    client = make_client(phone="8135551234")
    repair = make_repair(client)
    estimate = make_estimate(repair, labor_cost="150.00", parts_cost="50.00")
    return repair, estimate


class TestApprove:
    """Estimate approval applied as one transaction"""

    def test_applies_every_step(self, db_session, repair_with_estimate):
        repair, estimate = repair_with_estimate

        decision = EstimateApprovalSaga(db_session).approve(repair.id, estimate.id)

        assert decision.estimate_id == estimate.id
        assert decision.total_cost == Decimal("200.00")
        assert decision.brand == "Marantz"

        db_session.expire_all()
        approved = db_session.get(Estimate, estimate.id)
        assert approved.status == EstimateStatus.APPROVED
        assert approved.approved_date is not None
        assert approved.notified_date is not None

        updated = db_session.get(Repair, repair.id)
        assert updated.status == RepairStatus.REPAIRING
        assert updated.labor_cost == Decimal("150.00")

        lines = db_session.query(RepairPart).filter(RepairPart.repair_id == repair.id).all()
        assert len(lines) == 1
        assert lines[0].part_id is None
        assert lines[0].quantity == 1
        assert lines[0].unit_price == Decimal("50.00")
        assert lines[0].name == APPROVED_PARTS_LINE_NAME

        notes = db_session.query(RepairNote).filter(RepairNote.repair_id == repair.id).all()
        assert len(notes) == 1
        assert notes[0].author == SYSTEM_AUTHOR
        assert f"#{estimate.id}" in notes[0].text

    def test_decision_total_is_labor_plus_parts(self, db_session, make_client, make_repair, make_estimate):
        repair = make_repair(make_client())
        estimate = make_estimate(repair, labor_cost="120.00", parts_cost="30.00", total_cost="99.00")

        decision = EstimateApprovalSaga(db_session).approve(repair.id, estimate.id)

        assert decision.total_cost == Decimal("150.00")

    def test_no_parts_line_without_parts_cost(self, db_session, make_client, make_repair, make_estimate):
        repair = make_repair(make_client())
        estimate = make_estimate(repair, labor_cost="95.00", parts_cost="0.00")

        EstimateApprovalSaga(db_session).approve(repair.id, estimate.id)

        assert db_session.query(RepairPart).count() == 0
        assert db_session.query(RepairNote).count() == 1

    def test_declines_pending_siblings(self, db_session, repair_with_estimate, make_estimate):
        repair, estimate = repair_with_estimate
        sibling = make_estimate(repair, labor_cost="400.00")
        already_declined = make_estimate(repair, status=EstimateStatus.DECLINED)

        EstimateApprovalSaga(db_session).approve(repair.id, estimate.id)

        db_session.expire_all()
        assert db_session.get(Estimate, sibling.id).status == EstimateStatus.DECLINED
        assert db_session.get(Estimate, already_declined.id).status == EstimateStatus.DECLINED
        assert db_session.get(Estimate, estimate.id).status == EstimateStatus.APPROVED

    def test_second_approval_is_a_no_op(self, db_session, repair_with_estimate):
        repair, estimate = repair_with_estimate
        saga = EstimateApprovalSaga(db_session)

        assert saga.approve(repair.id, estimate.id) is not None
        assert saga.approve(repair.id, estimate.id) is None

        assert db_session.query(RepairPart).count() == 1
        assert db_session.query(RepairNote).count() == 1

    def test_estimate_from_another_repair_ignored(self, db_session, repair_with_estimate, make_client, make_repair):
        _, estimate = repair_with_estimate
        other = make_repair(make_client(name="Other"))

        assert EstimateApprovalSaga(db_session).approve(other.id, estimate.id) is None

    def test_rolls_back_on_database_error(self, db_session, repair_with_estimate, monkeypatch):
        repair, estimate = repair_with_estimate

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(OperationalError):
            EstimateApprovalSaga(db_session).approve(repair.id, estimate.id)

        db_session.expire_all()
        assert db_session.get(Estimate, estimate.id).status == EstimateStatus.PENDING
        assert db_session.get(Repair, repair.id).status == RepairStatus.ESTIMATE
        assert db_session.query(RepairPart).count() == 0
        assert db_session.query(RepairNote).count() == 0


class TestDecline:
    def test_declines_and_returns_unit_to_repairing(self, db_session, repair_with_estimate):
        repair, estimate = repair_with_estimate

        decision = EstimateApprovalSaga(db_session).decline(repair.id, estimate.id)
        assert decision.estimate_id == estimate.id

        db_session.expire_all()
        declined = db_session.get(Estimate, estimate.id)
        assert declined.status == EstimateStatus.DECLINED
        assert declined.approved_date is None

        assert db_session.get(Repair, repair.id).status == RepairStatus.REPAIRING
        assert db_session.query(RepairPart).count() == 0

        note = db_session.query(RepairNote).one()
        assert note.author == TECHNICIAN_AUTHOR
        assert "C-1001" in note.text

    def test_nothing_pending(self, db_session, make_client, make_repair, make_estimate):
        repair = make_repair(make_client())
        estimate = make_estimate(repair, status=EstimateStatus.APPROVED)

        assert EstimateApprovalSaga(db_session).decline(repair.id, estimate.id) is None
