"""
FastAPI Application Entry Point

Food Ordering API - Hybrid Architecture
Supports both Mock services (development) and Real APIs (production).

Endpoints:
    - /api/my/user: Profile provisioning, fetch and update
    - /api/my/restaurant: Owner's restaurant, its orders and order status
    - /api/restaurant: Public restaurant search and detail
    - /api/order: Checkout sessions, Stripe webhook, customer's orders
    - GET /health: System health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import AuthContext, require_user, verify_bearer
from app.core.config import Settings, get_settings, setup_logging
from app.core.exceptions import (
    AppError,
    UnauthorizedError,
    ValidationError,
    WebhookVerificationError,
)
from app.database import Database, get_db
from app.forms import ImageFile, parse_restaurant_form, read_image
from app.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ErrorResponse,
    HealthResponse,
    OrderResponse,
    OrderStatusUpdate,
    RestaurantForm,
    RestaurantResponse,
    RestaurantSearchResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from app.services import restaurants, users
from app.services.identity import BaseIdentityService, build_identity_service
from app.services.orders import OrderWorkflow
from app.services.payment import BasePaymentService, build_payment_service
from app.services.search import SearchParams, parse_page, search_restaurants
from app.services.storage import BaseStorageService, build_storage_service, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_order_workflow(request: Request) -> OrderWorkflow:
    return request.app.state.order_workflow


class RestaurantSubmission:
    """Validated multipart restaurant payload (fields + optional image)."""

    def __init__(self, form: RestaurantForm, image: Optional[ImageFile]):
        self.form = form
        self.image = image


async def restaurant_submission(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> RestaurantSubmission:
    form = await request.form()
    data = parse_restaurant_form(form)
    image = await read_image(
        form.get("imageFile"),
        max_bytes=settings.max_image_bytes,
        required=request.method == "POST",
    )
    return RestaurantSubmission(data, image)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@router.get("/", tags=["Root"])
async def root(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> HealthResponse:
    """Verify all system components are operational."""
    state = request.app.state

    db_status = "healthy"
    try:
        await db.execute(select(func.now()))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    payment_status = "healthy" if await state.payment_service.health_check() else "unhealthy"
    identity_status = "healthy" if await state.identity_service.health_check() else "unhealthy"
    storage_status = "healthy" if await state.storage_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, payment_status, identity_status, storage_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        payment_service=payment_status,
        identity_service=identity_status,
        storage_service=storage_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# MY USER ENDPOINTS
# =============================================================================

@router.get(
    "/api/my/user",
    response_model=UserResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["My User"],
)
async def get_current_user(
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Fetch the caller's profile."""
    return await users.get_current_user(db, auth.user_id)


@router.post(
    "/api/my/user",
    status_code=201,
    response_model=UserResponse,
    tags=["My User"],
    summary="Provision Profile",
)
async def create_current_user(
    payload: UserCreate,
    auth: AuthContext = Depends(verify_bearer),
    db: AsyncSession = Depends(get_db),
):
    """
    Create the local account after the first login.

    Returns 201 with the new profile, or an empty 200 if the account
    already exists.
    """
    user, created = await users.create_current_user(db, auth.auth0_id, payload)
    if not created:
        return Response(status_code=200)
    return user


@router.put(
    "/api/my/user",
    response_model=UserResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["My User"],
)
async def update_current_user(
    payload: UserUpdate,
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    """Overwrite name, address, city and country."""
    return await users.update_current_user(db, auth.user_id, payload)


# =============================================================================
# MY RESTAURANT ENDPOINTS
# =============================================================================

@router.get(
    "/api/my/restaurant",
    response_model=RestaurantResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["My Restaurant"],
)
async def get_my_restaurant(
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await restaurants.get_my_restaurant(db, auth.user_id)


@router.post(
    "/api/my/restaurant",
    status_code=201,
    response_model=RestaurantResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["My Restaurant"],
)
async def create_my_restaurant(
    submission: RestaurantSubmission = Depends(restaurant_submission),
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    storage: BaseStorageService = Depends(get_storage_service),
):
    """Create the caller's restaurant (multipart form with ``imageFile``)."""
    return await restaurants.create_my_restaurant(
        db, storage, auth.user_id, submission.form, submission.image
    )


@router.put(
    "/api/my/restaurant",
    response_model=RestaurantResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["My Restaurant"],
)
async def update_my_restaurant(
    submission: RestaurantSubmission = Depends(restaurant_submission),
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    storage: BaseStorageService = Depends(get_storage_service),
):
    """Overwrite the caller's restaurant; ``imageFile`` is optional."""
    return await restaurants.update_my_restaurant(
        db, storage, auth.user_id, submission.form, submission.image
    )


@router.get(
    "/api/my/restaurant/order",
    response_model=list[OrderResponse],
    responses={404: {"model": ErrorResponse}},
    tags=["My Restaurant"],
)
async def get_my_restaurant_orders(
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    workflow: OrderWorkflow = Depends(get_order_workflow),
):
    return await workflow.get_my_restaurant_orders(db, auth.user_id)


@router.patch(
    "/api/my/restaurant/order/{order_id}/status",
    response_model=OrderResponse,
    responses={401: {"description": "Not the restaurant owner"}, 404: {"model": ErrorResponse}},
    tags=["My Restaurant"],
)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    workflow: OrderWorkflow = Depends(get_order_workflow),
):
    return await workflow.update_order_status(db, auth.user_id, order_id, payload.status)


# =============================================================================
# PUBLIC RESTAURANT ENDPOINTS
# =============================================================================

@router.get(
    "/api/restaurant/search/{city}",
    response_model=RestaurantSearchResponse,
    tags=["Restaurants"],
)
async def search_restaurant(
    city: str,
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    selected_cuisines: Optional[str] = Query(None, alias="selectedCuisines"),
    sort_option: str = Query("lastUpdated", alias="sortOption"),
    page: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Paginated search by city, cuisines and free text."""
    params = SearchParams(
        search_query=search_query,
        selected_cuisines=selected_cuisines,
        sort_option=sort_option,
        page=parse_page(page),
    )
    return await search_restaurants(db, city, params, page_size=settings.search_page_size)


@router.get(
    "/api/restaurant/{restaurant_id}",
    response_model=RestaurantResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["Restaurants"],
)
async def get_restaurant(
    restaurant_id: str,
    db: AsyncSession = Depends(get_db),
):
    return await restaurants.get_restaurant(db, restaurant_id)


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

@router.get(
    "/api/order",
    response_model=list[OrderResponse],
    tags=["Orders"],
)
async def get_my_orders(
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    workflow: OrderWorkflow = Depends(get_order_workflow),
):
    return await workflow.get_my_orders(db, auth.user_id)


@router.post(
    "/api/order/checkout/create-checkout-session",
    response_model=CheckoutSessionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    tags=["Orders"],
)
async def create_checkout_session(
    payload: CheckoutSessionRequest,
    auth: AuthContext = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> CheckoutSessionResponse:
    """Price the cart, open a Stripe Checkout session and return its URL."""
    result = await workflow.create_checkout_session(db, auth.user_id, payload)
    return CheckoutSessionResponse(url=result.url)


@router.post(
    "/api/order/checkout/webhook",
    tags=["Orders"],
    summary="Stripe Webhook Endpoint",
)
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    workflow: OrderWorkflow = Depends(get_order_workflow),
) -> Response:
    """
    Handle Stripe events.

    The raw body is required for signature verification. Configure this URL
    in the Stripe dashboard (or forward to it with ``stripe listen``).
    """
    body = await request.body()
    await workflow.handle_webhook(db, body, request.headers.get("stripe-signature"))
    return Response(status_code=200)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> Response:
        # Never tell the client why
        logger.info(f"401 {request.method} {request.url.path}: {exc.message}")
        return Response(status_code=401)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info(f"400 {request.method} {request.url.path}: {exc.message}")
        content = {"message": exc.message}
        if exc.errors:
            content["errors"] = exc.errors
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.status_code} {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.status_code} {request.method} {request.url.path}: {exc.message}")

        message = exc.message
        if isinstance(exc, WebhookVerificationError):
            message = f"Webhook error: {exc.message}"
        return JSONResponse(status_code=exc.status_code, content={"message": message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all exception handler."""
        logger.exception(f"Unhandled exception: {exc}")
        settings: Settings = request.app.state.settings

        return JSONResponse(
            status_code=500,
            content={
                "message": "Something went wrong",
                "detail": str(exc) if settings.debug else None,
            },
        )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    settings: Optional[Settings] = None,
    *,
    payment_service: Optional[BasePaymentService] = None,
    identity_service: Optional[BaseIdentityService] = None,
    storage_service: Optional[BaseStorageService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    External clients are constructed here (or passed in, e.g. by tests) and
    live on ``app.state`` for the process lifetime.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application startup and shutdown events.
        """
        logger.info("=" * 60)
        logger.info(f"Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Debug: {settings.debug}")
        logger.info("=" * 60)

        if settings.use_real_services:
            missing = settings.validate_production_config()
            if missing:
                logger.warning(f"Missing production config: {missing}")

        database = Database(settings.database_url, echo=settings.database_echo)
        await database.create_all()
        logger.info("Database initialized")

        app.state.db = database
        app.state.payment_service = payment_service or build_payment_service(settings)
        app.state.identity_service = identity_service or build_identity_service(settings)
        app.state.storage_service = storage_service or build_storage_service(settings)
        app.state.order_workflow = OrderWorkflow(
            app.state.payment_service,
            frontend_url=settings.frontend_url,
        )

        logger.info(f"Payment Service: {app.state.payment_service.provider_name}")
        logger.info(f"Identity Service: {app.state.identity_service.provider_name}")
        logger.info(f"Storage Service: {app.state.storage_service.provider_name}")
        logger.info("Application ready!")

        yield  # Application runs

        logger.info("Shutting down...")
        aclose = getattr(app.state.identity_service, "aclose", None)
        if aclose is not None:
            await aclose()
        await database.dispose()
        logger.info("Cleanup complete")

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Food ordering backend: profiles, restaurants, search and "
            "Stripe Checkout orders."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    run_settings = get_settings()
    uvicorn.run(app, host=run_settings.api_host, port=run_settings.api_port)
