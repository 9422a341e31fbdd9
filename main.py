import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth import ADMIN_ROLE, AuthGate, get_auth_gate, require_role
from database import ConnectionManager
from errors import ApiError
from projects import ProjectService
from reviews import ReviewService
from schemas import Identity
from settings import get_settings
from upload import UploadRelay
from validation import LOGIN_RULES

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()
connection = ConnectionManager(settings.database.url, settings.database.name, settings.database.retry_seconds)
started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    for issue in settings.validate():
        logger.warning(issue)
    connection.start()
    logger.info(f"Server starting on port {settings.port} ({settings.environment})")
    yield
    logger.info("Shutting down gracefully...")
    connection.stop()


# App and CORS
app = FastAPI(title="Landing Page API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins,
    allow_origin_regex=settings.cors.origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    expose_headers=["Content-Length", "Content-Type"],
    max_age=86400,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    ip = request.client.host if request.client else "-"
    logger.info(f"{request.method} {request.url.path} - IP: {ip}")
    response = await call_next(request)
    logger.info(f"{request.method} {request.url.path} - Status: {response.status_code}")
    return response


# Error handlers
@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())[1:]) or "body", "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"success": False, "message": "Validation failed", "errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        content = {"success": False, "message": "Route not found", "path": request.url.path}
    else:
        content = {"success": False, "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"success": False, "message": "Server Error"})


# Dependencies
def get_db() -> Database:
    return connection.get_db()


def get_review_service(db: Database = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_project_service(db: Database = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def get_upload_relay() -> UploadRelay:
    return UploadRelay.from_settings(get_settings().upload)


# Utility endpoints
@app.get("/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - started_at, 3),
        "environment": settings.environment,
        "database": "connected" if connection.is_connected else "disconnected",
    }


@app.get("/")
def root():
    return {
        "message": "Landing Page API Server",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "reviews": "/api/reviews",
            "projects": "/api/projects",
            "auth": "/api/auth",
            "upload": "/api/upload",
        },
    }


# Reviews
@app.get("/api/reviews")
def list_reviews(service: ReviewService = Depends(get_review_service)):
    reviews, stats = service.list_reviews()
    return {"success": True, "count": len(reviews), "data": reviews, "stats": stats}


@app.post("/api/reviews", status_code=201)
def create_review(payload: Dict[str, Any] = Body(...), service: ReviewService = Depends(get_review_service)):
    review, stats = service.submit_review(payload)
    return {"success": True, "message": "Review submitted successfully", "data": review, "stats": stats}


@app.get("/api/reviews/stats")
def review_stats(service: ReviewService = Depends(get_review_service)):
    return {"success": True, "data": service.get_stats()}


# Projects
@app.get("/api/projects")
def list_projects(service: ProjectService = Depends(get_project_service)):
    projects = service.list_active_projects()
    return {"success": True, "count": len(projects), "data": projects}


@app.post("/api/projects", status_code=201)
def create_project(
    payload: Dict[str, Any] = Body(...),
    admin: Identity = Depends(require_role(ADMIN_ROLE)),
    service: ProjectService = Depends(get_project_service),
):
    project = service.create_project(admin, payload)
    return {"success": True, "message": "Project created successfully", "data": project}


# Auth
@app.post("/api/auth/login")
def login(payload: Dict[str, Any] = Body(...), gate: AuthGate = Depends(get_auth_gate)):
    data = LOGIN_RULES.validate(payload)
    token, identity = gate.login(data["email"], data["password"])
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": {"email": identity.email, "role": identity.role},
    }


@app.get("/api/auth/me")
def me(admin: Identity = Depends(require_role(ADMIN_ROLE))):
    return {"success": True, "data": admin.model_dump()}


@app.post("/api/auth/validate")
def validate_token(admin: Identity = Depends(require_role(ADMIN_ROLE))):
    return {"success": True, "message": "Token is valid", "user": admin.model_dump()}


# Upload
@app.post("/api/upload/image")
def upload_image(
    image: Optional[UploadFile] = File(default=None),
    admin: Identity = Depends(require_role(ADMIN_ROLE)),
    relay: UploadRelay = Depends(get_upload_relay),
):
    data = None
    if image is not None:
        # one byte past the limit is enough to reject oversized files
        data = image.file.read(relay.max_file_size + 1)
    result = relay.upload_image(
        admin,
        image.filename if image else None,
        image.content_type if image else None,
        data,
    )
    return {"success": True, "message": "Image uploaded successfully", "data": result}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
