"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from shared.config.settings import settings
from rest_api.core.lifespan import lifespan
from rest_api.core.cors import configure_cors
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.diner import orders_router as diner_orders_router, session_router
from rest_api.routers.staff import orders_router as staff_orders_router, tables_router
from rest_api.routers.public import health_router


app = FastAPI(
    title="Order Board REST API",
    description="Live order lifecycle: customer submission, staff fulfillment and archival",
    version="0.1.0",
    lifespan=lifespan,
)

register_middlewares(app)
configure_cors(app)


# =============================================================================
# Routers
# =============================================================================

app.include_router(health_router)
app.include_router(diner_orders_router)
app.include_router(session_router)
app.include_router(staff_orders_router)
app.include_router(tables_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
