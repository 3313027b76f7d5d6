import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from restaurant.version import VERSION
from restaurant.core.config import settings
from restaurant.core.errors import ServiceError
from restaurant.api import auth, categories, dashboard, menu, menu_items, orders, payments, users

logger = logging.getLogger("restaurant")

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

configure_logging(settings.LOG_LEVEL)

# Create instrumentator first
instrumentator = Instrumentator()

app = FastAPI(title="Restaurant Ordering Service", version=VERSION)

# Instrument the app BEFORE adding routes or middleware
instrumentator.instrument(app).expose(app, include_in_schema=False, endpoint="/metrics", should_gzip=True)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- error rendering: every failure is {"error": <message>} ---

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return _error(exc.status_code, exc.message)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail))

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return _error(400, "; ".join(problems) or "Invalid request.")

@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _error(409, "Conflicting or invalid reference in request.")

@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("database error on %s %s", request.method, request.url.path)
    return _error(500, "Database error.")

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    message = "An unexpected error occurred." if settings.is_production else (str(exc) or "Internal server error.")
    return _error(500, message)

# --- health ---

@app.get("/health")
def health(): return {"status": "ok"}

@app.get("/v1/_info")
def info(): return {"service": "restaurant", "version": VERSION}

@app.on_event("startup")
async def startup_event():
    missing = settings.missing_secrets()
    if missing:
        raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            logger.debug("%s %s", sorted(route.methods), route.path)

app.include_router(auth.router,       prefix="/api/auth",            tags=["auth"])
app.include_router(users.router,      prefix="/api/users",           tags=["users"])
app.include_router(categories.router, prefix="/api/categories",      tags=["categories"])
app.include_router(menu.router,       prefix="/api/menu",            tags=["menu"])
app.include_router(menu_items.router, prefix="/api/menu-items",      tags=["menu-items"])
app.include_router(orders.router,     prefix="/api/orders",          tags=["orders"])
app.include_router(payments.router,   prefix="/api/payments",        tags=["payments"])
app.include_router(dashboard.router,  prefix="/api/admin/dashboard", tags=["dashboard"])
