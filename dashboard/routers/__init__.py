"""
Operator API Routers.
"""
from . import pools, risk, controls, notifications

__all__ = ["pools", "risk", "controls", "notifications"]
