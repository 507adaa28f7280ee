import os
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, HTMLResponse
from fastapi.exceptions import RequestValidationError
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

# === Config ===
from app.core.config import load_config

settings = load_config()

# === Logging ===
logging.basicConfig(
    level=settings.log_level,
    format="[%(asctime)s] %(levelname)s in %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if not settings.weather_api_key:
    logger.warning("⚠️ WEATHER_API_KEY is not set. Weather lookups and subscriptions will fail.")

from app.core.db import init_db
from app.middleware.api_logger import APILoggerMiddleware
from app.services.email import build_mailer
from app.services.mx import MXChecker
from app.services.weather import WeatherClient

# === Routers ===
from app.api.v1 import weather, subscriptions

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))


# === App lifecycle ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        init_db()
        app.state.settings = settings
        app.state.weather = WeatherClient(
            api_key=settings.weather_api_key,
            base_url=settings.weather_api_url,
            timeout=settings.weather_api_timeout,
        )
        app.state.mx = MXChecker()
        app.state.mailer = build_mailer(settings)
        logger.info("✅ Startup complete: database ready, clients initialized.")
    except Exception:
        logger.exception("❌ Startup failed.")
        raise

    try:
        yield
    finally:
        await app.state.weather.aclose()
        await app.state.mailer.aclose()
        logger.info("🛑 Shutdown complete.")


# === Initialize App ===
app = FastAPI(
    title="Weather API",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(APILoggerMiddleware)


# === Global Exception Handlers ===
VALIDATION_MESSAGES = {
    "query": "Invalid request",
    "path": "Invalid token format",
    "body": "Invalid input",
}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors: dict[str, list[str]] = {}
    source = None
    for error in exc.errors():
        loc = error.get("loc", ())
        source = source or (loc[0] if loc else None)
        field = str(loc[-1]) if loc else "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))

    logger.info(f"⚠️ Validation error on {request.url.path}: {errors}")
    return JSONResponse(
        status_code=400,
        content={"message": VALIDATION_MESSAGES.get(source, "Invalid input"), "errors": errors},
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = dict(exc.detail) if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# === Health Check ===
@app.get("/ping")
async def ping():
    return {"status": "ok", "message": "Weather API is live"}


# === Subscribe Page ===
@app.get("/", response_class=HTMLResponse)
async def subscribe_page(request: Request):
    return templates.TemplateResponse(request, "subscribe.html")


# === Mount API Routes ===
app.include_router(weather.router, prefix="/api")
app.include_router(subscriptions.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server is running on port {settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
