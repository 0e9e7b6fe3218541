from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import approvals, bridge, earn, health, swap
from .api.errors import register_error_handlers
from .config import settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="YieldPilot API",
    description="Approval-gated DeFi intents: lending deposits, withdrawals, swaps, bridges and allowance revocation",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(earn.router)
app.include_router(swap.router)
app.include_router(bridge.router)
app.include_router(approvals.router)


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "YieldPilot API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "yieldpilot.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
