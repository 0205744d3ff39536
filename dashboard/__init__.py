"""
Dashboard Package.

Operator REST API over the pool risk engine.

Modules:
- api: application factory and error mapping
- routers/: pools, risk, controls, notifications
"""

from .api import create_app

__all__ = ["create_app"]
