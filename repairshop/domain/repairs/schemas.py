"""Repair domain schemas - Pydantic models for responses"""

from typing import Optional

from pydantic import BaseModel


class CostSummaryResponse(BaseModel):
    """Cost breakdown for a repair, in dollars"""

    repair_id: int
    parts_total: float
    labor_total: float
    subtotal: float
    tax: float
    fees: float
    total: float
    diagnostic_credit: float
    amount_due: float


class NotificationResponse(BaseModel):
    """Result of texting a customer about their repair"""

    success: bool = True
    repair_id: int
    message_sid: Optional[str] = None
    to: str
    amount_due: float
