from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from pathlib import Path
import os
import logging
from catalog.api.routes import products, auth, health
from catalog.config import settings
from catalog.database import engine, create_tables
from catalog.errors import CatalogError
from catalog.logging_config import setup_logging
from catalog.storage import build_blob_store

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Product Catalog API",
    description="Product catalog with image uploads for a storefront and admin console",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(products.router)

# Uploaded images are served from disk only by the local backend
if settings.blob_backend.lower() == "local":
    app.mount(
        settings.uploads_url_path,
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads"
    )

# Storefront pages, when bundled
static_dir = os.path.join(os.path.dirname(__file__), "static")
if os.path.exists(static_dir):
    app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.get("/", include_in_schema=False)
async def root():
    """Serve the storefront page if present."""
    html_path = os.path.join(static_dir, "index.html")
    if os.path.exists(html_path):
        return FileResponse(html_path)
    return {"message": "Product Catalog API", "docs": "/docs"}


@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Endpoint not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.on_event("startup")
async def startup():
    """Configure logging, the blob store and (in development) the schema."""
    setup_logging(settings.log_level)

    app.state.blob_store = build_blob_store(settings)
    if settings.blob_backend.lower() == "local":
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Using %s blob store", settings.blob_backend)

    # In production, use Alembic migrations instead
    if settings.auto_create_tables:
        await create_tables()


@app.on_event("shutdown")
async def shutdown():
    """Cleanup on shutdown."""
    await engine.dispose()
