from typing import Optional
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from greenleaf import __version__
from greenleaf.auth.routes import router as auth_router
from greenleaf.cart.routes import router as cart_router
from greenleaf.catalog.routes import router as products_router, category_router
from greenleaf.notifications import Mailer, build_mailer
from greenleaf.orders.routes import router as orders_router
from greenleaf.payments.gateway import PaymentGateway, RazorpayGateway
from greenleaf.payments.reconciliation import PaymentConfig
from greenleaf.payments.routes import router as payments_router
from greenleaf.reviews.routes import router as reviews_router
from greenleaf.shared.exceptions import register_exception_handlers
from greenleaf.shared.logging_config import setup_logging, RequestLoggingMiddleware
from greenleaf.shared.security_config import setup_rate_limiting, SecurityHeadersMiddleware
from greenleaf.shared.utils import Settings, settings, get_db_client, utcnow, HealthResponse
from greenleaf.testimonials.routes import router as testimonials_router

SERVICE_NAME = "greenleaf-store"


async def create_indexes(db):
    await db.users.create_index("email", unique=True)
    await db.users.create_index("google_id")
    # revoked tokens disappear once the token itself would have expired
    await db.revoked_tokens.create_index("jti")
    await db.revoked_tokens.create_index("exp", expireAfterSeconds=0)
    await db.products.create_index("slug", unique=True)
    await db.categories.create_index("slug", unique=True)
    await db.carts.create_index("user_id", unique=True)
    await db.orders.create_index("user_id")
    await db.orders.create_index("razorpay_payment_id")
    await db.payments.create_index("payment_id", unique=True)
    await db.payments.create_index("user_id")
    await db.reviews.create_index("product_id")


def create_app(
    config: Settings = settings,
    db_client: Optional[AsyncIOMotorClient] = None,
    gateway: Optional[PaymentGateway] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    logger = setup_logging(SERVICE_NAME)

    app = FastAPI(title="Greenleaf Store", version=__version__)

    # Security Setup
    setup_rate_limiting(app, enabled=config.RATE_LIMIT_ENABLED)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware, service_name=SERVICE_NAME)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.state.settings = config
    app.state.gateway = gateway or RazorpayGateway(
        config.RAZORPAY_KEY_ID, config.RAZORPAY_KEY_SECRET, config.RAZORPAY_API_URL
    )
    app.state.mailer = mailer or build_mailer(config)
    app.state.payment_config = PaymentConfig(
        signing_secret=config.RAZORPAY_KEY_SECRET,
        currency=config.PAYMENT_CURRENCY,
        use_transactions=config.MONGO_TRANSACTIONS,
    )
    if not config.RAZORPAY_KEY_SECRET:
        logger.warning("RAZORPAY_KEY_SECRET is not set; online payments cannot be verified")

    @app.on_event("startup")
    async def startup_db_client():
        app.mongodb_client = db_client or get_db_client(config.MONGO_URL)
        app.mongodb = app.mongodb_client[config.MONGO_DB_NAME]
        await create_indexes(app.mongodb)
        logger.info(f"Connected to database {config.MONGO_DB_NAME}")

    @app.on_event("shutdown")
    async def shutdown_db_client():
        # an injected client belongs to the caller
        if db_client is None:
            app.mongodb_client.close()

    for router in (
        auth_router, products_router, category_router, cart_router,
        payments_router, orders_router, reviews_router, testimonials_router,
    ):
        app.include_router(router)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        try:
            await app.mongodb_client.admin.command('ping')
            db_status = "connected"
        except PyMongoError:
            db_status = "disconnected"

        if db_status != "connected":
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Service Unhealthy"
            )

        return HealthResponse(
            service=SERVICE_NAME,
            status="healthy",
            timestamp=utcnow(),
            version=__version__,
            database=db_status
        )

    return app


app = create_app()
