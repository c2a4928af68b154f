import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_cors_origins, get_openai_key, get_openai_model, is_debug
from .database import init_db
from .dependencies import build_services
from .exceptions import ExternalServiceError, NotFoundError, ValidationError
from .routes.analysis import router as analysis_router
from .routes.prediction import router as prediction_router
from .routes.recommendation import router as recommendation_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # Startup
    init_db()
    app.state.services = build_services()
    print("Starting IdeaVault Scoring Core")
    print(f"   OpenAI Key:  {' Configured (' + get_openai_model() + ')' if get_openai_key() else ' Not set (keyword fallbacks)'}")
    print("   Ready to score ideas!")

    yield

    print("Shutting down IdeaVault Scoring Core")
    await app.state.services.dispatcher.drain()


app = FastAPI(
    title="IdeaVault Scoring Core",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(analysis_router)
app.include_router(prediction_router)
app.include_router(recommendation_router)


@app.get(
    "/",
    summary="API Root",
    description="Welcome endpoint with API information",
    tags=["General"]
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "IdeaVault Scoring Core",
        "version": "0.1.0",
        "description": "Text features, success prediction and recommendations for listed ideas",
        "docs": "/docs",
        "endpoints": {
            "analyze": "POST /analyze - Extract text features from an idea",
            "predict": "POST /predict - Predict idea success for a developer",
            "recommend": "POST /recommend - Recommend ideas to a user",
            "health": "GET /health - Service health check"
        }
    }


@app.get(
    "/health",
    summary="Global Health Check",
    description="Check if the API server is running",
    tags=["General"]
)
async def health():
    """Global health check endpoint."""
    return {
        "status": "healthy",
        "service": "ideavault-scoring",
        "version": "0.1.0"
    }


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"success": False, "error": "Not found", "detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"success": False, "error": "Invalid input", "detail": str(exc)})


@app.exception_handler(ExternalServiceError)
async def external_service_handler(request: Request, exc: ExternalServiceError):
    logger.error("External service failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "success": False,
            "error": "Service unavailable",
            "detail": str(exc) if is_debug() else f"{exc.service} is unavailable, retry later"
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "detail": str(exc) if is_debug() else "An unexpected error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ideavault.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=is_debug(),
    )
