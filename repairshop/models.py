from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Money is stored as NUMERIC(10, 2) and read back as Decimal
Money = Numeric(10, 2, asdecimal=True)


class RepairStatus:
    QUEUED = "queued"
    DIAGNOSING = "diagnosing"
    ESTIMATE = "estimate"
    PARTS = "parts"
    REPAIRING = "repairing"
    TESTING = "testing"
    READY = "ready"
    CLOSED = "closed"

    # States a repair can be in while it still waits on an estimate decision
    PRE_REPAIR = (QUEUED, DIAGNOSING, ESTIMATE, PARTS)


class RepairPriority:
    NORMAL = "normal"
    WARRANTY = "warranty"
    RUSH = "rush"


class EstimateStatus:
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"

    FINAL = (APPROVED, DECLINED)


class MessageDirection:
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageType:
    GENERAL = "general"
    OPT_IN = "opt_in"
    OPT_OUT = "opt_out"
    ESTIMATE_APPROVAL = "estimate_approval"
    ESTIMATE_DENIAL = "estimate_denial"
    # Outbound-only tags used to correlate replies with a repair
    ESTIMATE = "estimate"
    PICKUP = "pickup"


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True, index=True)  # Legacy primary phone (normalized)
    sms_opted_in = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    phones = relationship("ClientPhone", back_populates="client", cascade="all, delete-orphan")
    repairs = relationship("Repair", back_populates="client")


class ClientPhone(Base):
    """Explicit phone list for a client; searched before the legacy phone field"""

    __tablename__ = "client_phones"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    phone_number = Column(String(20), nullable=False, index=True)  # Normalized digits
    label = Column(String(50), nullable=True)  # mobile, work, home
    is_primary = Column(Boolean, default=False, nullable=False)

    client = relationship("Client", back_populates="phones")


class Repair(Base):
    __tablename__ = "repairs"

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    claim_number = Column(String(50), nullable=True, index=True)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    status = Column(String(20), default=RepairStatus.QUEUED, nullable=False)
    priority = Column(String(20), default=RepairPriority.NORMAL, nullable=False)

    labor_cost = Column(Money, default=0, nullable=False)

    # Fees
    diagnostic_fee_collected = Column(Boolean, default=False, nullable=False)
    diagnostic_fee = Column(Money, default=0, nullable=False)
    deposit_amount = Column(Money, default=0, nullable=False)
    rush_fee = Column(Money, default=0, nullable=False)
    on_site_fee = Column(Money, default=0, nullable=False)
    is_on_site = Column(Boolean, default=False, nullable=False)
    return_shipping_cost = Column(Money, default=0, nullable=False)
    is_tax_exempt = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="repairs")
    parts = relationship("RepairPart", back_populates="repair", order_by="RepairPart.id")
    notes = relationship("RepairNote", back_populates="repair", order_by="RepairNote.id")
    estimates = relationship("Estimate", back_populates="repair", order_by="Estimate.id")


class Part(Base):
    """Inventory part"""

    __tablename__ = "parts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    part_number = Column(String(100), nullable=True, index=True)
    quantity_in_stock = Column(Integer, default=0, nullable=False)
    retail_price = Column(Money, default=0, nullable=False)


class RepairPart(Base):
    """Line item on a repair; part_id is NULL for custom entries"""

    __tablename__ = "repair_parts"

    id = Column(Integer, primary_key=True, index=True)
    repair_id = Column(Integer, ForeignKey("repairs.id"), nullable=False, index=True)
    part_id = Column(Integer, ForeignKey("parts.id"), nullable=True)
    name = Column(String(255), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    unit_price = Column(Money, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    repair = relationship("Repair", back_populates="parts")
    part = relationship("Part")


class RepairNote(Base):
    """Append-only audit trail entry"""

    __tablename__ = "repair_notes"

    id = Column(Integer, primary_key=True, index=True)
    repair_id = Column(Integer, ForeignKey("repairs.id"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    author = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    repair = relationship("Repair", back_populates="notes")


class Estimate(Base):
    __tablename__ = "estimates"

    id = Column(Integer, primary_key=True, index=True)
    repair_id = Column(Integer, ForeignKey("repairs.id"), nullable=False, index=True)
    diagnostic_notes = Column(Text, nullable=True)
    work_performed = Column(Text, nullable=True)
    labor_cost = Column(Money, default=0, nullable=False)
    parts_cost = Column(Money, default=0, nullable=False)
    total_cost = Column(Money, default=0, nullable=False)  # labor_cost + parts_cost
    status = Column(String(20), default=EstimateStatus.PENDING, nullable=False)
    created_technician = Column(String(100), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    notified_date = Column(DateTime, nullable=True)
    approved_date = Column(DateTime, nullable=True)

    repair = relationship("Repair", back_populates="estimates")


class SmsMessage(Base):
    """Append-only log of every inbound and outbound text"""

    __tablename__ = "sms_messages"

    id = Column(Integer, primary_key=True, index=True)
    message_sid = Column(String(64), nullable=True)
    direction = Column(String(10), nullable=False)  # inbound, outbound
    from_number = Column(String(20), nullable=True)
    to_number = Column(String(20), nullable=True)
    body = Column(Text, nullable=True)
    client_id = Column(Integer, ForeignKey("clients.id"), nullable=True)
    repair_id = Column(Integer, ForeignKey("repairs.id"), nullable=True)
    message_type = Column(String(30), default=MessageType.GENERAL, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


# Approval correlation looks up the latest outbound estimate text per number
Index(
    "ix_sms_messages_correlation",
    SmsMessage.direction,
    SmsMessage.message_type,
    SmsMessage.to_number,
)
