"""SMS domain - Inbound Twilio webhook, message classification and estimate approval"""

from .router import router

__all__ = ["router"]
