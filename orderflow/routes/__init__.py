"""
HTTP routers mounted by ``orderflow.main``.
"""

from orderflow.routes import foods, orders

__all__ = ["foods", "orders"]
