import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone

from dotenv import load_dotenv

# Load environment variables as early as possible
load_dotenv()

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .database import create_db_and_tables
from .dependencies import get_rate_limiter, get_verification_store
from .exceptions import AuthFlowError, auth_flow_exception_handler, validation_exception_handler
from .middleware import SecurityMiddleware, LoggingMiddleware, ErrorHandlingMiddleware
from .routers import phone_auth_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format=settings.LOG_FORMAT
)
logging.getLogger("twilio.http_client").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


async def sweep_expired_codes(interval_seconds: float, store=None, rate_limiter=None) -> None:
    if store is None:
        store = get_verification_store()
    if rate_limiter is None:
        rate_limiter = get_rate_limiter()
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            store.purge_expired()
            rate_limiter.purge_expired()
        except Exception:
            logger.exception("Verification code sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    create_db_and_tables()
    if settings.EXPOSE_VERIFICATION_CODE:
        logger.warning("EXPOSE_VERIFICATION_CODE is enabled: codes are returned in API responses")
    if settings.SMS_FAILURE_IS_SUCCESS:
        logger.warning("SMS_FAILURE_IS_SUCCESS is enabled: failed SMS deliveries are reported as sent")

    sweeper = None
    if settings.VERIFICATION_SWEEP_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(sweep_expired_codes(settings.VERIFICATION_SWEEP_INTERVAL_SECONDS))
    yield
    # Shutdown
    if sweeper is not None:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
    logger.info(f"Shutting down {settings.APP_NAME}...")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

app.add_exception_handler(AuthFlowError, auth_flow_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(phone_auth_router.router)


@app.get("/health")
def health_check():
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sms_configured": settings.twilio_configured,
        "verification_store": settings.VERIFICATION_STORE_BACKEND,
    }
