import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from scoreboard.api.endpoints import admin, billing, kiosk, limits, public
from scoreboard.core.database import engine, Base
from scoreboard.core.errors import OperationError
from scoreboard.core.settings import settings
from scoreboard.models import audit_log, payment_history, profile, subscription, tier_pricing  # noqa: F401
from scoreboard.models import kiosk as kiosk_models, scoreboard as scoreboard_models  # noqa: F401
from scoreboard.services.pricing import PricingCache
from scoreboard.services.variant_mapping import VariantTable

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Scoreboard Manager API")

app.state.pricing_cache = PricingCache(ttl_s=settings.pricing_cache_ttl_s)
app.state.variant_table = VariantTable.from_settings(settings)

# Configure CORS
origins = settings.resolved_cors_origins()
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
def startup() -> None:
    if settings.db_auto_create:
        Base.metadata.create_all(bind=engine)
    configured = [c.env_var for c in app.state.variant_table.all_variant_configs() if c.variant_id]
    logger.info("startup.ready environment=%s variants_configured=%s", settings.environment, len(configured))


@app.exception_handler(OperationError)
async def operation_error_handler(request: Request, exc: OperationError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request", "details": {"errors": jsonable_encoder(exc.errors())}},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("request.unhandled_error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


# API Routes
app.include_router(public.router, prefix="/api", tags=["public"])
app.include_router(billing.router, prefix="/api", tags=["billing"])
app.include_router(limits.router, prefix="/api", tags=["limits"])
app.include_router(kiosk.router, prefix="/api", tags=["kiosk"])
app.include_router(admin.router, prefix="/api", tags=["admin"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
