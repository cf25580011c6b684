import uuid
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
import structlog

from analog.core.config import settings
from analog.core.errors import InvalidConditionValueError, UnknownFieldError
from analog.core.logging import setup_logging
from analog.api.router import api_router
from analog.db.session import init_db

# 1. Initialize Logging
setup_logging()
logger = structlog.get_logger()

# 2. Lifecycle (Startup/Shutdown)
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("system_startup", env=settings.ENVIRONMENT, database=settings.DATABASE_PATH)
    await init_db()
    yield
    logger.info("system_shutdown")

# 3. Create App
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# 4. Middleware: CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# 5. Middleware: request logging
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or f"req_{uuid.uuid4().hex[:12]}"

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            "http_request_failed",
            error=str(e),
            duration=time.perf_counter() - start_time
        )
        raise

    logger.info(
        "http_request_completed",
        status_code=response.status_code,
        duration=time.perf_counter() - start_time
    )
    response.headers["X-Request-ID"] = request_id
    return response

# Condition validators raise domain errors while the request body is parsed
@app.exception_handler(InvalidConditionValueError)
@app.exception_handler(UnknownFieldError)
async def condition_error_handler(request: Request, exc: Exception):
    logger.warning("invalid_condition_rejected", error=str(exc))
    return JSONResponse(status_code=422, content={"detail": str(exc)})

# 6. Mount Routes
app.include_router(api_router, prefix=settings.API_V1_STR)

# 7. Mount Metrics Endpoint (Prometheus)
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Health Check
@app.get("/health")
async def health_check():
    return {"status": "ok", "version": settings.PROJECT_VERSION}
