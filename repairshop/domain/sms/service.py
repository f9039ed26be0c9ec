"""SMS webhook service - Handles one inbound text end to end"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...shared.validators import normalize_phone
from .classifier import (
    EstimateApproval,
    EstimateDenial,
    General,
    MessageIntent,
    OptIn,
    OptOut,
    classify_message,
    needs_estimate_lookup,
)
from .message_log import MessageLogger
from .repository import ResolvedClient, SmsRepository
from .saga import EstimateApprovalSaga
from .schemas import InboundSms, SmsOutcome, SmsSettings

logger = logging.getLogger(__name__)


class SmsWebhookService:
    """
    Resolve, classify, apply and log an inbound text.

    Errors raised while resolving or applying are logged and swallowed here;
    the inbound message is still logged and the caller still gets an outcome
    it can render as a valid reply.
    """

    def __init__(self, db: Session, settings: SmsSettings):
        self.db = db
        self.settings = settings
        self.repo = SmsRepository()
        self.saga = EstimateApprovalSaga(db)
        self.message_logger = MessageLogger(db)

    # ------------------------------------------------------------------
    # Reply wording
    # ------------------------------------------------------------------

    def opt_in_reply(self) -> str:
        return (
            f"You have been opted in for text notifications from {self.settings.shop_name}. "
            f"Reply STOP to unsubscribe."
        )

    def approval_reply(self, brand: Optional[str], model: Optional[str], total) -> str:
        unit = " ".join(part for part in (brand, model) if part) or "unit"
        return (
            f"Thank you! Your repair for {unit} has been approved for ${float(total or 0):.2f} "
            f"and we will begin working on it. We will notify you when it is ready for pickup."
        )

    def denial_reply(self, brand: Optional[str], model: Optional[str]) -> str:
        unit = " ".join(part for part in (brand, model) if part) or "unit"
        return (
            f"Understood. We will notify you when your {unit} is ready for pickup. "
            f"Please call us at {self.settings.shop_phone} if you have any questions."
        )

    # ------------------------------------------------------------------
    # Intent handlers
    # ------------------------------------------------------------------

    def _opt_in(self, client: Optional[ResolvedClient]) -> SmsOutcome:
        if client:
            self.repo.set_sms_opt_in(self.db, client.id, True)
            logger.info(f"📱 Client {client.id} opted in to SMS")
        return SmsOutcome(
            message_type=OptIn.message_type,
            reply=self.opt_in_reply(),
            client_id=client.id if client else None,
        )

    def _opt_out(self, client: Optional[ResolvedClient]) -> SmsOutcome:
        if client:
            self.repo.set_sms_opt_in(self.db, client.id, False)
            logger.info(f"📵 Client {client.id} opted out of SMS")
        # No reply: Twilio answers STOP keywords itself
        return SmsOutcome(message_type=OptOut.message_type, client_id=client.id if client else None)

    def _approve(self, client: ResolvedClient, intent: EstimateApproval) -> SmsOutcome:
        decision = self.saga.approve(intent.repair_id, intent.estimate_id)
        if decision is None:
            # Estimate was handled by staff or a duplicate reply in the meantime
            logger.info(f"ℹ️ No pending estimate left for client {client.id}, treating YES as opt-in")
            return self._opt_in(client)

        return SmsOutcome(
            message_type=intent.message_type,
            reply=self.approval_reply(decision.brand, decision.model, decision.total_cost),
            client_id=client.id,
            repair_id=decision.repair_id,
        )

    def _decline(self, client: ResolvedClient, intent: EstimateDenial) -> SmsOutcome:
        decision = self.saga.decline(intent.repair_id, intent.estimate_id)
        if decision is None:
            return SmsOutcome(message_type=General.message_type, client_id=client.id)

        return SmsOutcome(
            message_type=intent.message_type,
            reply=self.denial_reply(decision.brand, decision.model),
            client_id=client.id,
            repair_id=decision.repair_id,
        )

    def apply(self, intent: MessageIntent, client: Optional[ResolvedClient]) -> SmsOutcome:
        if isinstance(intent, OptOut):
            return self._opt_out(client)
        if isinstance(intent, EstimateApproval) and client:
            return self._approve(client, intent)
        if isinstance(intent, EstimateDenial) and client:
            return self._decline(client, intent)
        if isinstance(intent, OptIn):
            return self._opt_in(client)
        return SmsOutcome(message_type=General.message_type, client_id=client.id if client else None)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def handle_inbound(self, message: InboundSms) -> SmsOutcome:
        """
        Process one inbound text and log it (plus the reply, if any).

        Returns:
            SmsOutcome; reply is None when nothing should be sent back
        """
        from_phone = normalize_phone(message.from_number)
        to_phone = normalize_phone(message.to_number)

        logger.info(f"📨 Incoming SMS {message.message_sid or '-'} from {from_phone}")

        outcome = SmsOutcome()
        client: Optional[ResolvedClient] = None
        try:
            client = self.repo.find_client_by_phone(self.db, from_phone)

            candidate = None
            if client and needs_estimate_lookup(message.body):
                candidate = self.repo.find_estimate_candidate(self.db, from_phone)

            intent = classify_message(message.body, client, candidate)
            outcome = self.apply(intent, client)
        except Exception:
            self.db.rollback()
            logger.exception(f"❌ SMS webhook processing failed for {message.message_sid or from_phone}")
            outcome = SmsOutcome(client_id=client.id if client else None)

        self.message_logger.record_inbound(
            message_sid=message.message_sid,
            from_number=from_phone,
            to_number=to_phone,
            body=message.body,
            message_type=outcome.message_type,
            client_id=outcome.client_id,
            repair_id=outcome.repair_id,
        )

        if outcome.reply:
            self.message_logger.record_outbound(
                from_number=to_phone,
                to_number=from_phone,
                body=outcome.reply,
                message_type=outcome.message_type,
                client_id=outcome.client_id,
                repair_id=outcome.repair_id,
            )

        logger.info(f"✅ SMS from {from_phone} classified as {outcome.message_type}")
        return outcome
