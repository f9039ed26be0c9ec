"""Repair domain - cost rules and customer notifications"""

from .router import router

__all__ = ["router"]
