"""Pharmacy delivery FastAPI application.

Serves the Delivery domain over HTTP. Every write is applied synchronously and
each request is wrapped in the delivery domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied (see domain.toml).
from delivery.domain import delivery  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

delivery.init()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Pharmacy Delivery API",
    description="Order delivery lifecycle: assignment, status tracking and live location",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the delivery domain context for each request."""
    with delivery.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers and error handlers
# ---------------------------------------------------------------------------
from delivery.api import (  # noqa: E402
    lookup_router,
    order_router,
    register_delivery_exception_handlers,
)

app.include_router(order_router)
app.include_router(lookup_router)

register_exception_handlers(app)
register_delivery_exception_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"delivery": {"name": delivery.name}},
        }
    )
