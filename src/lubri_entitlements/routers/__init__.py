"""Routers package public exports."""

__all__ = [
    "admin",
    "entitlements",
    "health",
    "tenants",
]
