"""
Trainer Pricing Backend
Plans, discounts and subscriptions for the fitness-training marketplace
"""

from pathlib import Path
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from routers.plans_router import plans_router
from routers.pricing_router import pricing_router
from routers.subscriptions_router import subscriptions_router
from utils.rate_limit import RateLimiterMiddleware, default_rate_limit_options
from database import init_db, close_db, check_db_connection
from config.settings import settings, IS_PRODUCTION
from services.errors import PricingError
from backend.utils.responses import success_response, error_response

# ============================================================================
# LOGGING
# ============================================================================

# Logging setup - write ALL events to <LOG_DIR>/app.log
handlers = [logging.StreamHandler()]
if settings.log_dir:
    LOGS_DIR = Path(settings.log_dir)
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    handlers.append(logging.FileHandler(LOGS_DIR / "app.log"))
logging.basicConfig(
    level=settings.log_level.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers,
)
logger = logging.getLogger(__name__)

# ============================================================================
# FASTAPI APP SETUP
# ============================================================================

app = FastAPI(title="Trainer Pricing API")


def _is_render_env() -> bool:
    """Check if running in Render.com environment"""
    return bool(settings.render or settings.render_external_url or settings.render_service_name)


# Uncaught exception middleware - logs all unhandled exceptions and returns 500
class UncaughtExceptionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Uncaught exception: {e}\n{traceback.format_exc()}")
            return JSONResponse(
                status_code=500,
                content={"ok": False, "data": {}, "error": "internal_error", "message": "Internal Server Error"}
            )


# Security headers middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses: HSTS, X-Frame-Options, X-Content-Type-Options"""
    async def dispatch(self, request, call_next):
        response = await call_next(request)

        # JSON API only, nothing should be framed or sniffed
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        # HTTPS is only guaranteed behind Render
        if _is_render_env():
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"

        return response


app.add_middleware(UncaughtExceptionMiddleware)
app.add_middleware(RateLimiterMiddleware, **default_rate_limit_options())
app.add_middleware(SecurityHeadersMiddleware)

# CORS MUST be near the bottom
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url] if settings.frontend_url else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PricingError)
async def pricing_error_handler(request: Request, exc: PricingError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_code}: {exc.message}")
    return error_response(exc.error_code, status=exc.status_code, message=exc.message)


# ============================================================================
# STARTUP
# ============================================================================

@app.on_event("startup")
async def initialize_database():
    """Create all tables if they do not exist yet."""
    try:
        await init_db()
        logger.info(f"Database initialized successfully (production={IS_PRODUCTION})")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_database():
    await close_db()


@app.get("/health")
async def health():
    if not await check_db_connection():
        return error_response("database_unavailable", status=503, message="Database unavailable")
    return success_response({"status": "healthy", "database": "connected"})


# ============================================================================
# INCLUDE ROUTERS
# ============================================================================
app.include_router(plans_router)
app.include_router(pricing_router)
app.include_router(subscriptions_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
