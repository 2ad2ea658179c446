"""
FastAPI application exposing the leave approval workflow.
Every leave endpoint authenticates with HTTP Basic credentials against the directory.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import BaseModel, ConfigDict, Field

from data.demo_users import seed_directory
from leave_approval.config import settings
from leave_approval.draft import LeaveDraft
from leave_approval.errors import AuthError, Forbidden, LeaveError, NotFound, ValidationFailed
from leave_approval.models import Action, LeaveRequest, Principal, Role, Stage
from leave_approval.service import LeaveService
from leave_approval.store import StoreKey, build_store

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationFailed: 422,
    Forbidden: 403,
    NotFound: 404,
    AuthError: 401,
}


# Pydantic models for API
class RegisterRequest(BaseModel):
    """Request model for account registration."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "secret", "role": "student"}}
    )

    username: str = Field(..., description="Unique username (case-insensitive)")
    password: str = Field(..., description="Account password")
    role: str = Field(..., description="student, teacher or admin")


class LeaveSubmission(BaseModel):
    """Request model for a new leave request."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "reason": "sick",
                "start_date": "2024-03-01",
                "end_date": "2024-03-03",
                "teacher": "bob",
            }
        }
    )

    reason: str | None = Field("sick", description="sick, casual, vacation or other")
    other_reason: str = Field("", description="Free text, required when reason is 'other'")
    start_date: str | None = Field(None, description="First day of leave (YYYY-MM-DD)")
    end_date: str | None = Field(None, description="Last day of leave (YYYY-MM-DD)")
    teacher: str | None = Field(None, description="Teacher asked to approve (students only)")


class DecisionRequest(BaseModel):
    """Request model for an approve/reject decision."""

    action: Action
    stage: Stage


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    environment: str
    users: int
    leave_requests: int


# Global service instance
leave_service = None


def get_service() -> LeaveService:
    """Get or create the global service, restored from the configured store."""
    global leave_service
    if leave_service is None:
        store = build_store(settings.store_path)
        leave_service = LeaveService.from_store(store)
        if settings.seed_demo_users and seed_directory(leave_service.directory):
            store.save(StoreKey.DIRECTORY, leave_service.directory.dump())
            logger.info("Seeded demo users")
    return leave_service


basic_auth = HTTPBasic()


def current_principal(
    credentials: HTTPBasicCredentials = Depends(basic_auth),
    service: LeaveService = Depends(get_service),
) -> Principal:
    """Authenticate the caller for this request."""
    return unwrap(service.directory.authenticate(credentials.username, credentials.password))


def unwrap(result):
    """Raise tagged errors so the exception handler can map them to a status code."""
    if isinstance(result, LeaveError):
        raise result
    return result


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Leave Approval API")
    logger.info(f"Environment: {settings.environment}")
    get_service()

    yield

    logger.info("Shutting down Leave Approval API")


# Create FastAPI app
app = FastAPI(
    title="Leave Approval API",
    description="Two-stage (teacher, admin) approval workflow for leave requests",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LeaveError)
async def leave_error_handler(request: Request, exc: LeaveError):
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Basic"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


# API Endpoints


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": "Leave Approval API", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check(service: LeaveService = Depends(get_service)):
    """Service status and ledger size."""
    return HealthResponse(
        status="healthy",
        environment=settings.environment,
        users=len(service.directory),
        leave_requests=len(service.engine),
    )


@app.post("/register", response_model=Principal, status_code=status.HTTP_201_CREATED, tags=["Accounts"])
def register(request: RegisterRequest, service: LeaveService = Depends(get_service)):
    """Create an account with the given role."""
    return unwrap(service.register(request.username, request.password, request.role))


@app.get("/me", response_model=Principal, tags=["Accounts"])
def me(principal: Principal = Depends(current_principal)):
    return principal


@app.get("/teachers", response_model=list[str], tags=["Accounts"])
def teachers(service: LeaveService = Depends(get_service)):
    """Teachers a student can address a request to."""
    return service.teachers()


@app.post("/leaves", response_model=LeaveRequest, status_code=status.HTTP_201_CREATED, tags=["Leaves"])
def submit_leave(
    submission: LeaveSubmission,
    principal: Principal = Depends(current_principal),
    service: LeaveService = Depends(get_service),
):
    """
    Submit a leave request.

    Students must name a registered teacher; teacher requests go straight
    to admin review. Admins cannot submit.
    """
    draft = LeaveDraft(**submission.model_dump())
    return unwrap(service.engine.submit(principal, draft))


@app.get("/leaves/mine", response_model=list[LeaveRequest], tags=["Leaves"])
def my_leaves(
    principal: Principal = Depends(current_principal),
    service: LeaveService = Depends(get_service),
):
    return service.engine.my_requests(principal.username)


@app.get("/leaves/pending/teacher", response_model=list[LeaveRequest], tags=["Leaves"])
def pending_for_teacher(
    principal: Principal = Depends(current_principal),
    service: LeaveService = Depends(get_service),
):
    """Student requests addressed to the calling teacher and still pending."""
    return service.engine.pending_for_teacher(principal.username)


@app.get("/leaves/pending/admin", response_model=list[LeaveRequest], tags=["Leaves"])
def pending_for_admin(
    principal: Principal = Depends(current_principal),
    service: LeaveService = Depends(get_service),
):
    """Requests ready for admin review. Admins only."""
    if principal.role is not Role.ADMIN:
        raise Forbidden("Only admins can review pending admin decisions.")
    return service.engine.pending_for_admin()


@app.get("/leaves", response_model=list[LeaveRequest], tags=["Leaves"])
def all_leaves(
    principal: Principal = Depends(current_principal),
    service: LeaveService = Depends(get_service),
):
    """Full ledger. Admins only."""
    return unwrap(service.engine.all(principal))


@app.post("/leaves/{request_id}/decision", response_model=LeaveRequest, tags=["Leaves"])
def decide_leave(
    request_id: str,
    decision: DecisionRequest,
    principal: Principal = Depends(current_principal),
    service: LeaveService = Depends(get_service),
):
    """Approve or reject a request at the teacher or admin stage."""
    try:
        logger.info(f"Decision request: {request_id} {decision.action.value} by {principal.username}")
        return unwrap(service.engine.decide(principal, request_id, decision.action, decision.stage))
    except LeaveError:
        raise
    except Exception as e:
        logger.error(f"Error deciding {request_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred processing your request. Please try again.",
        ) from e


if __name__ == "__main__":
    uvicorn.run(
        "leave_approval.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", 8080)),
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
