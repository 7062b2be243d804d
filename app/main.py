import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional

from fastapi import Body, Depends, FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.auth import get_session_user_id, hash_password, issue_session_token, verify_password
from app.config import settings
from app.errors import (
    AppError,
    AuthenticationError,
    DeliveryError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    describe_exception,
)
from app.logging_utils import setup_logging, RequestLoggingMiddleware, log_send_data
from app.metrics import record_send_outcome, get_metrics, get_metrics_content_type
from app.schemas import (
    ApiResponse,
    CredentialsRequest,
    HealthResponse,
    MessageEnvelope,
    MessageResponse,
    MessagesListEnvelope,
    SendMessageRequest,
    SessionUserEnvelope,
    SessionUserResponse,
)
from app.service import MessageService
from app.sms_gateway import SmsGateway, build_sms_gateway
from app.storage import init_db, check_db_health, get_db, create_user, get_user_by_email, list_messages


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Outcome label recorded in sms_send_total for each failure type
SEND_RESULTS = {
    ValidationError: "validation_error",
    UnauthorizedError: "unauthorized",
    NotFoundError: "not_found",
    DeliveryError: "delivery_failed",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: create tables and build the SMS gateway from settings
    - Shutdown: nothing to release
    """
    init_db()
    app.state.sms_gateway = build_sms_gateway(settings)
    yield


app = FastAPI(
    title="SMS Dashboard API",
    description="Compose SMS messages through Twilio and keep a log of what was sent",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


def get_sms_gateway(request: Request) -> Optional[SmsGateway]:
    """Dependency returning the process-wide SMS gateway (None if unconfigured)."""
    return getattr(request.app.state, "sms_gateway", None)


# =============================================================================
# Error Handlers
# =============================================================================

def envelope(success: bool, message: str, data=None) -> dict:
    body = {"success": success, "message": message}
    if data is not None:
        body["data"] = data
    return body


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"{request.method} {request.url.path} failed: {exc.status_code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(False, exc.message, jsonable_encoder(exc.data)),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} invalid request body: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=envelope(False, "Invalid request body", jsonable_encoder(exc.errors())),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} unhandled error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=envelope(False, "Internal server error", describe_exception(exc)),
    )


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(request: Request, response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if:
    1. SESSION_SECRET is set
    2. The SMS gateway is configured
    3. DB is reachable and schema is applied

    Otherwise returns 503 (Service Unavailable).
    """
    if not settings.SESSION_SECRET:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="SESSION_SECRET not configured")

    if get_sms_gateway(request) is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="Twilio credentials not configured")

    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not_ready", reason="Database not reachable or schema not applied")

    return HealthResponse(status="ready")


# =============================================================================
# Auth Routes
# =============================================================================

def session_user(user) -> SessionUserResponse:
    return SessionUserResponse(
        id=user.id,
        email=user.email,
        created_at=user.created_at,
        token=issue_session_token(user.id),
    )


@app.post(
    "/api/auth/register",
    status_code=status.HTTP_201_CREATED,
    response_model=SessionUserEnvelope,
    responses={
        400: {"model": ApiResponse, "description": "Invalid request body"},
        409: {"model": ApiResponse, "description": "User already exists"},
    },
)
def register(body: CredentialsRequest, db: Session = Depends(get_db)) -> SessionUserEnvelope:
    """
    Create a user account and return it with a session token.
    """
    logger.info(f"POST /api/auth/register: email={body.email}")
    user = create_user(db, email=body.email, password_hash=hash_password(body.password))
    return SessionUserEnvelope(
        success=True,
        message="User registered successfully",
        data=session_user(user),
    )


@app.post(
    "/api/auth/session",
    response_model=SessionUserEnvelope,
    responses={401: {"model": ApiResponse, "description": "Invalid email or password"}},
)
def sign_in(body: CredentialsRequest, db: Session = Depends(get_db)) -> SessionUserEnvelope:
    """
    Exchange email and password for a session token.
    """
    user = get_user_by_email(db, body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        raise AuthenticationError()

    logger.info(f"User {user.id} signed in")
    return SessionUserEnvelope(
        success=True,
        message="Signed in successfully",
        data=session_user(user),
    )


# =============================================================================
# Messages Routes
# =============================================================================

@app.get(
    "/api/messages",
    response_model=MessagesListEnvelope,
    responses={500: {"model": ApiResponse, "description": "Internal server error"}},
)
def get_messages(db: Session = Depends(get_db)) -> MessagesListEnvelope:
    """
    List every stored message across all users.

    Not scoped to the caller and not paginated; each call is a fresh full read.
    """
    try:
        messages = list_messages(db)
    except AppError:
        raise
    except Exception as e:
        logger.exception("Error retrieving messages")
        raise InternalError(data=describe_exception(e)) from e

    logger.info(f"GET /api/messages: returned {len(messages)} messages")
    return MessagesListEnvelope(
        success=True,
        message="Messages retrieved successfully",
        data=[MessageResponse.model_validate(m) for m in messages],
    )


@app.post(
    "/api/users/{user_id}/messages",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageEnvelope,
    responses={
        400: {"model": ApiResponse, "description": "Missing required fields"},
        403: {"model": ApiResponse, "description": "Unauthorized"},
        404: {"model": ApiResponse, "description": "User not found"},
        500: {"model": ApiResponse, "description": "Failed to send SMS / Internal server error"},
    },
)
def send_message(
    request: Request,
    user_id: str,
    session_user_id: Annotated[Optional[str], Depends(get_session_user_id)],
    body: Annotated[Optional[SendMessageRequest], Body()] = None,
    db: Session = Depends(get_db),
    gateway: Optional[SmsGateway] = Depends(get_sms_gateway),
) -> MessageEnvelope:
    """
    Send an SMS on behalf of user_id and record it.

    The caller must hold a session for user_id. The message is persisted
    only after the provider accepted it.

    Headers:
        - Authorization: Bearer <session token>
    """
    logger.info(f"POST /api/users/{user_id}/messages")
    body = body or SendMessageRequest()
    service = MessageService(db, gateway)

    try:
        message = service.send_message(
            requesting_user_id=session_user_id,
            target_user_id=user_id,
            recipient=body.recipient,
            content=body.content,
        )
    except AppError as e:
        result = SEND_RESULTS.get(type(e), "error")
        record_send_outcome(result)
        log_send_data(request, user_id=user_id, result=result)
        raise
    except Exception as e:
        logger.exception(f"Error sending message for user {user_id}")
        record_send_outcome("error")
        log_send_data(request, user_id=user_id, result="error")
        raise InternalError(data=describe_exception(e)) from e

    record_send_outcome("sent")
    log_send_data(request, user_id=user_id, result="sent", message_id=message.id)

    return MessageEnvelope(
        success=True,
        message="Message sent successfully",
        data=MessageResponse.model_validate(message),
    )


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    - http_requests_total: Total HTTP requests by method, path, status
    - sms_send_total: Send-message outcomes by result
    - request_latency_seconds: Request latency histogram
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
