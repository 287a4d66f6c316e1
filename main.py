from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lexmarket.config import CORS_ORIGINS, LOG_LEVEL
from lexmarket.database import engine, Base
from lexmarket.exceptions import (
    ConflictError, MalformedDocumentError, NotFoundError, OperationFailed, ValidationError
)
from lexmarket.applications.routes import router as applications_router
from lexmarket.cases.routes import router as cases_router
from lexmarket.notifications.routes import router as notifications_router

# Setup logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="Lexmarket API",
    description="Legal services marketplace: cases, milestones and lawyer applications",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =====================================================
# ERROR HANDLERS
# =====================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "errors": exc.errors})

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": f"{exc.resource} not found"})

@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

@app.exception_handler(OperationFailed)
async def operation_failed_handler(request: Request, exc: OperationFailed):
    return JSONResponse(status_code=503, content={"detail": "Operation failed, please try again"})

@app.exception_handler(MalformedDocumentError)
async def malformed_document_handler(request: Request, exc: MalformedDocumentError):
    logger.error(str(exc))
    return JSONResponse(status_code=500, content={"detail": "Stored data could not be read"})

# Include routers
app.include_router(cases_router)
app.include_router(applications_router)
app.include_router(notifications_router)

@app.get("/")
def root():
    return {
        "message": "Lexmarket API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
def health_check():
    return {"status": "healthy"}
