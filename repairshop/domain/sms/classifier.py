"""
Inbound SMS classification

classify_message maps a message body to exactly one intent. It is pure: the
caller resolves the sender and looks up the estimate candidate first, so the
webhook service only has to match on the returned intent.

Precedence:
1. Opt-out keywords (exact match) always win.
2. YES / APPROVE with an actionable estimate -> EstimateApproval.
3. DENY with an actionable estimate -> EstimateDenial.
4. Opt-in keywords, Y from a known client, or YES from a known client with
   nothing to approve -> OptIn.
5. Everything else -> General.
"""

from dataclasses import dataclass
from typing import Optional, Union

from ...models import MessageType
from .repository import EstimateCandidate, ResolvedClient

OPT_OUT_KEYWORDS = frozenset({"STOP", "STOPALL", "UNSUBSCRIBE", "CANCEL", "END", "QUIT"})
OPT_IN_KEYWORDS = frozenset({"START", "UNSTOP"})
YES_KEYWORD = "YES"
# Consent only; a bare Y never approves an estimate
CONSENT_KEYWORDS = frozenset({YES_KEYWORD, "Y"})
APPROVE_KEYWORDS = frozenset({YES_KEYWORD, "APPROVE"})
DENY_KEYWORDS = frozenset({"DENY"})

# Bodies that need an estimate candidate lookup before classification
ESTIMATE_REPLY_KEYWORDS = APPROVE_KEYWORDS | DENY_KEYWORDS


@dataclass(frozen=True)
class OptOut:
    message_type = MessageType.OPT_OUT


@dataclass(frozen=True)
class OptIn:
    message_type = MessageType.OPT_IN


@dataclass(frozen=True)
class EstimateApproval:
    repair_id: int
    estimate_id: int
    message_type = MessageType.ESTIMATE_APPROVAL


@dataclass(frozen=True)
class EstimateDenial:
    repair_id: int
    estimate_id: int
    message_type = MessageType.ESTIMATE_DENIAL


@dataclass(frozen=True)
class General:
    message_type = MessageType.GENERAL


MessageIntent = Union[OptOut, OptIn, EstimateApproval, EstimateDenial, General]


def normalize_keyword(body: Optional[str]) -> str:
    return (body or "").strip().upper()


def needs_estimate_lookup(body: Optional[str]) -> bool:
    return normalize_keyword(body) in ESTIMATE_REPLY_KEYWORDS


def classify_message(
    body: Optional[str],
    client: Optional[ResolvedClient],
    candidate: Optional[EstimateCandidate] = None,
) -> MessageIntent:
    """
    Classify an inbound message body.

    Args:
        body: Raw message body (trimmed and upper-cased here)
        client: Resolved sender, or None for unknown numbers
        candidate: Pending estimate the sender could act on, if any

    Returns:
        One of OptOut, OptIn, EstimateApproval, EstimateDenial, General
    """
    keyword = normalize_keyword(body)

    if keyword in OPT_OUT_KEYWORDS:
        return OptOut()

    if client is not None:
        if keyword in APPROVE_KEYWORDS and candidate is not None:
            return EstimateApproval(repair_id=candidate.repair_id, estimate_id=candidate.estimate_id)

        if keyword in DENY_KEYWORDS and candidate is not None:
            return EstimateDenial(repair_id=candidate.repair_id, estimate_id=candidate.estimate_id)

        # Y, or YES with nothing to approve, is read as consent to texts
        if keyword in CONSENT_KEYWORDS:
            return OptIn()

    if keyword in OPT_IN_KEYWORDS:
        return OptIn()

    return General()
