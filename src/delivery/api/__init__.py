"""Delivery domain API package."""

from delivery.api.routes import lookup_router, order_router, register_delivery_exception_handlers

__all__ = ["order_router", "lookup_router", "register_delivery_exception_handlers"]
