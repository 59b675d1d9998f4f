from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cuesheet.api.routes import router as api_router
from cuesheet.config.settings import get_settings
from cuesheet.utils.logging_config import setup_logging


# Setup logging
logger = setup_logging()
settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Event timeline scheduling engine: running order, call sheets and contingency plans",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.app_name}...")
    logger.info(f"Lead setup: {settings.lead_setup_minutes} min, call buffer: {settings.call_buffer_minutes} min")
    logger.info(f"Result cache: {'enabled' if settings.cache_enabled else 'disabled'}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.app_name}...")

app.include_router(api_router, prefix="/api/v1", tags=["timeline"])


@app.get("/health", tags=["health"])
def health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "ok", "app": settings.app_name, "version": "1.0.0"}
