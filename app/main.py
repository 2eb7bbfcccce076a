import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import settings
from app.modules.notifications import routes as notifications_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def install_rate_limiting(app: FastAPI, rate_limit: str) -> Limiter:
    """Per-client-address limit applied to every route not marked @limiter.exempt."""
    limiter = Limiter(key_func=get_remote_address, default_limits=[rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
limiter = install_rate_limiting(app, settings.rate_limit)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": str(exc)},
        headers=notifications_routes.CORS_HEADERS,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()) if p != 'body')}: {e.get('msg')}" for e in errors
    ) or "Invalid request body"
    logger.warning("Request validation failed path=%s errors=%s", request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_methods=["POST"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(notifications_routes.router)


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup (APNs host: %s)", settings.apns_host)

    if settings.scheduler_enabled:
        from app.database.supabase_client import get_supabase
        from app.modules.notifications.scheduler import scheduler_loop
        store = notifications_routes.get_notification_store(get_supabase())
        dispatcher = notifications_routes.get_dispatcher(store, notifications_routes.get_apns_client())
        processor = notifications_routes.get_processor(store, dispatcher)
        app.state.scheduler_task = asyncio.create_task(
            scheduler_loop(processor, settings.scheduler_interval_seconds)
        )
        logger.info(f"Notification scheduler started - draining queue every {settings.scheduler_interval_seconds}s")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "scheduler_task", None)
    if task is not None:
        task.cancel()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to ten-push-service", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe: reports whether APNs credentials are present."""
    apns_configured = bool(settings.apns_key_id and settings.apns_team_id and settings.apns_private_key)
    return {"status": "ready", "apns_configured": apns_configured}
