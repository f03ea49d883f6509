"""Main FastAPI application."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from spendsense.config import settings
from spendsense.assistant import routes as assistant_routes
from spendsense.data.ai_queries import routes as ai_query_routes
from spendsense.middleware.rate_limit import setup_rate_limiting

logging.basicConfig(
    level=logging.DEBUG if settings.APP_ENV == "development" else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title="SpendSense API",
    description="Expense tracking with an AI assistant that answers questions about your spending",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_rate_limiting(app)

# Include routers
app.include_router(assistant_routes.router, prefix=f"{settings.API_V1_PREFIX}/assistant", tags=["Assistant"])
app.include_router(ai_query_routes.router, prefix=settings.API_V1_PREFIX, tags=["AI Queries"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "SpendSense API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "spendsense.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
