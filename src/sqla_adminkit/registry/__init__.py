"""Resource registry — registration, lookup and startup validation."""

from sqla_adminkit.registry._registry import AdminRegistry

__all__ = ["AdminRegistry"]
