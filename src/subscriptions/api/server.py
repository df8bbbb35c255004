"""
Subscription Records - FastAPI Server

Endpoints (prefix /api):
- POST   /create                - Create a record
- DELETE /delete/{id}           - Delete a record
- PUT    /update/{id}           - Replace a record
- GET    /record/{id}           - Get a record by id
- GET    /record/user_service   - Get a user's record for one service
- GET    /records/user          - All records of a user
- GET    /records               - Filtered, paginated listing
- GET    /records/summary       - Total price over a period

Dates are accepted as DD-MM-YYYY.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional
import structlog

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..config import Settings, get_settings
from ..core.errors import NotFound, RecordServiceError, ValidationFailed
from ..core.record import Record
from ..core.service import RecordService
from ..core.validation import ParseError, parse_date, parse_optional_date
from ..logging_config import configure_logging
from ..persistence.database import Database
from ..persistence.repository import RecordRepository

logger = structlog.get_logger()


# ============================================================================
# Pydantic Models
# ============================================================================

class RecordRequest(BaseModel):
    """Body for create and update."""
    service_name: str = Field(..., min_length=1, description="Subscribed service, e.g. Netflix")
    price: int = Field(..., ge=0, description="Price in whole currency units")
    user_id: str = Field(..., min_length=1, description="Owner identifier")
    expires_at: str = Field(..., description="Expiry date, DD-MM-YYYY")
    created_at: Optional[str] = Field(None, description="Start date, DD-MM-YYYY; defaults to now")


class RecordResponse(BaseModel):
    """A stored subscription record."""
    id: int
    service_name: str
    price: int
    user_id: str
    created_at: datetime
    expires_at: datetime


class SummaryResponse(BaseModel):
    """Total price over a period."""
    total: int
    start_time: str
    end_time: str
    user_id: Optional[str]
    service_name: Optional[str]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    database: str
    uptime_seconds: float


# ============================================================================
# Application State
# ============================================================================

class AppState:
    """Application state container."""

    def __init__(self, database: Database):
        self.database = database
        self.repository = RecordRepository(database)
        self.service = RecordService(self.repository)
        self.start_time = datetime.now(timezone.utc)


def get_state(request: Request) -> AppState:
    """Get application state."""
    state = getattr(request.app.state, "records", None)
    if state is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return state


def get_service(state: AppState = Depends(get_state)) -> RecordService:
    return state.service


def _record_from_request(body: RecordRequest, record_id: Optional[int] = None) -> Record:
    try:
        expires_at = parse_date(body.expires_at)
        created_at = parse_optional_date(body.created_at)
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return Record(
        id=record_id,
        service_name=body.service_name,
        price=body.price,
        user_id=body.user_id,
        created_at=created_at,
        expires_at=expires_at,
    )


# ============================================================================
# Endpoints
# ============================================================================

system_router = APIRouter(tags=["System"])
router = APIRouter(prefix="/api", tags=["Records"])


@system_router.get("/health", response_model=HealthResponse)
def health_check(state: AppState = Depends(get_state)):
    """Health check endpoint."""
    uptime = (datetime.now(timezone.utc) - state.start_time).total_seconds()
    return HealthResponse(
        status="healthy",
        version=__version__,
        database="postgres" if state.database.is_postgres else "sqlite",
        uptime_seconds=uptime,
    )


@router.post("/create", response_model=RecordResponse, status_code=201)
def create_record(body: RecordRequest, service: RecordService = Depends(get_service)):
    """Create a subscription record."""
    record = service.create(_record_from_request(body))
    return record.to_dict()


@router.delete("/delete/{record_id}", status_code=204)
def delete_record(
    record_id: int = Path(..., gt=0),
    service: RecordService = Depends(get_service),
):
    """Delete a record by id."""
    service.delete_by_id(record_id)
    return Response(status_code=204)


@router.put("/update/{record_id}", status_code=204)
def update_record(
    body: RecordRequest,
    record_id: int = Path(..., gt=0),
    service: RecordService = Depends(get_service),
):
    """
    Replace a record.

    Every field but the id is overwritten; an omitted created_at becomes
    the time of the update.
    """
    service.update(_record_from_request(body, record_id))
    return Response(status_code=204)


# Must be registered before /record/{record_id}
@router.get("/record/user_service", response_model=RecordResponse)
def get_record_by_user_and_service(
    user_id: str = Query(..., min_length=1),
    service_name: str = Query(..., min_length=1),
    service: RecordService = Depends(get_service),
):
    """Get a user's record for one service."""
    return service.get_by_user_and_service(user_id, service_name).to_dict()


@router.get("/record/{record_id}", response_model=RecordResponse)
def get_record(
    record_id: int = Path(..., gt=0),
    service: RecordService = Depends(get_service),
):
    """Get a record by id."""
    return service.get_by_id(record_id).to_dict()


@router.get("/records/user", response_model=List[RecordResponse])
def get_records_by_user(
    user_id: str = Query(..., min_length=1),
    service: RecordService = Depends(get_service),
):
    """
    All records of a user.

    An unknown user gets an empty list, not 404: users are managed elsewhere.
    """
    return [r.to_dict() for r in service.get_by_user(user_id)]


@router.get("/records/summary", response_model=SummaryResponse)
def sum_price_for_period(
    start_time: str = Query(..., description="First day, DD-MM-YYYY"),
    end_time: str = Query(..., description="Last day (inclusive), DD-MM-YYYY"),
    user_id: Optional[str] = None,
    service_name: Optional[str] = None,
    service: RecordService = Depends(get_service),
):
    """Total price of records created within [start_time, end_time]."""
    try:
        start = parse_date(start_time)
        end = parse_date(end_time)
    except ParseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if end < start:
        raise HTTPException(status_code=400, detail="end_time must not be before start_time")

    total = service.sum_for_period(start.date(), end.date(), user_id, service_name)
    return SummaryResponse(
        total=total,
        start_time=start_time,
        end_time=end_time,
        user_id=user_id or None,
        service_name=service_name or None,
    )


@router.get("/records", response_model=List[RecordResponse])
def list_records(
    limit: int = Query(0, description="Page size; 0 means 20, capped at 100"),
    offset: int = Query(0),
    user_id: Optional[str] = None,
    service_name: Optional[str] = None,
    service: RecordService = Depends(get_service),
):
    """List records newest first with optional user/service filters."""
    records = service.list_records(limit, offset, user_id, service_name)
    return [r.to_dict() for r in records]


# ============================================================================
# Error Mapping
# ============================================================================

async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


async def record_service_error_handler(request: Request, exc: RecordServiceError):
    if isinstance(exc, NotFound):
        status_code = 404
    elif isinstance(exc, ValidationFailed):
        status_code = 400
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


# ============================================================================
# Application Factory
# ============================================================================

def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    ``database`` overrides the one built from settings (used by tests).
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    @asynccontextmanager
    async def lifespan(application: FastAPI):
        db = database or Database(settings.database_url)
        db.initialize()
        application.state.records = AppState(db)
        logger.info("subscriptions_starting", version=__version__, env=settings.env)
        yield
        logger.info("subscriptions_stopping")
        db.close()

    application = FastAPI(
        title="Online Subscriptions API",
        description="CRUD and period totals for user subscription records.",
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(RequestValidationError, request_validation_handler)
    application.add_exception_handler(RecordServiceError, record_service_error_handler)

    application.include_router(system_router)
    application.include_router(router)

    return application


app = create_app()
