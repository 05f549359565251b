import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from config import settings
from waf_manager.api.dependencies import close_proxy_service
from waf_manager.api.middleware import EmptyPreflightCORSMiddleware
from waf_manager.api.endpoints import router as proxy_router
from waf_manager.api.templates import router as templates_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} {settings.PROJECT_VERSION}")
    yield
    await close_proxy_service()
    logger.info("Shut down Cloudflare proxy service")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.PROJECT_VERSION,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    EmptyPreflightCORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(proxy_router)
app.include_router(templates_router)


@app.get("/")
async def root():
    return {"message": settings.PROJECT_NAME}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    import sys

    # Default port
    port = 8000

    # Check if port is specified as command line argument
    if "--port" in sys.argv:
        try:
            port_index = sys.argv.index("--port") + 1
            if port_index < len(sys.argv):
                port = int(sys.argv[port_index])
        except (ValueError, IndexError):
            print("Invalid port specified, using default port 8000")

    print(f"Starting server on port {port}")
    uvicorn.run(app, host="0.0.0.0", port=port)
