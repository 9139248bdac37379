import os

# Must be set before anything imports shared.config.settings
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""

from datetime import date, time, timedelta
from decimal import Decimal

import httpx
import pytest
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shared.config.database import SERVICE_SCHEMAS, Base, get_db
from shared.exceptions import NotificationError, register_exception_handlers
from shared.security import Identity, create_access_token, limiter
from services.notification_service.dispatcher import NotificationDispatcher
from services.notification_service.senders import EmailSender
from services.order_service.models import PickupLocation
from services.order_service.router import public_router as order_public_router
from services.order_service.router import router as order_router
from services.order_service.schemas import CheckoutRequest
from services.orchestrator.dependencies import get_lifecycle
from services.orchestrator.lifecycle import OrderLifecycle
from services.payment_service import models as payment_models  # noqa: F401
from services.payment_service.fake_gateway import FakeGateway
from services.payment_service.router import public_router as payment_public_router
from services.payment_service.router import router as payment_router
from services.product_service.models import Product
from services.product_service.router import router as product_router

TODAY = date(2030, 6, 1)
ADMIN_EMAIL = "owner@sweetshop.test"


class RecordingSender(EmailSender):
    """Keeps every message in memory; can be switched to fail like a provider outage."""

    def __init__(self):
        self.messages = []
        self.fail = False

    async def send(self, recipients, subject, html):
        if self.fail:
            raise NotificationError("mail provider unavailable")
        self.messages.append({"to": list(recipients), "subject": subject, "html": html})

    def subjects(self):
        return [message["subject"] for message in self.messages]


# --- Database ---

@pytest.fixture
async def engine():
    # One in-memory SQLite database; the per-service Postgres schemas are mapped away
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        execution_options={"schema_translate_map": {schema: None for schema in SERVICE_SCHEMAS}},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def seeded(session_factory):
    async with session_factory() as session:
        session.add_all([
            Product(id="p1", name="Chocolate Cake", price=Decimal("9.99"), is_active=True),
            Product(id="p2", name="Lemon Tart", price=Decimal("4.50"), is_active=True),
            Product(id="p3", name="Retired Eclair", price=Decimal("3.00"), is_active=False),
            PickupLocation(
                id="loc-1", name="Main Street Shop", address="1 Main Street",
                city="Vienna", zip_code="1010", is_active=True,
            ),
            PickupLocation(
                id="loc-2", name="Closed Kiosk", address="2 Side Street",
                city="Vienna", is_active=False,
            ),
        ])
        await session.commit()


@pytest.fixture
async def db(session_factory, seeded):
    async with session_factory() as session:
        yield session


# --- Collaborators ---

@pytest.fixture
def gateway():
    return FakeGateway(currency="eur")


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def dispatcher(sender):
    return NotificationDispatcher(sender, [ADMIN_EMAIL])


@pytest.fixture
def lifecycle(gateway, dispatcher):
    return OrderLifecycle(
        gateway,
        dispatcher,
        currency="eur",
        site_url="https://shop.test/",
        gateway_timeout=0.5,
        pickup_opens=time(9, 0),
        pickup_closes=time(18, 0),
        today=lambda: TODAY,
    )


# --- Identities ---

@pytest.fixture
def customer():
    return Identity(subject="user-1", email="ada@example.com")


@pytest.fixture
def other_customer():
    return Identity(subject="user-2", email="grace@example.com")


@pytest.fixture
def admin():
    return Identity(subject="admin-1", email=ADMIN_EMAIL, role="admin")


@pytest.fixture
def auth_headers():
    def build(identity: Identity) -> dict:
        token = create_access_token(identity.subject, email=identity.email, role=identity.role)
        return {"Authorization": f"Bearer {token}"}
    return build


# --- Orders ---

@pytest.fixture
def checkout_data():
    def build(**overrides) -> dict:
        data = {
            "customer_name": "Ada Lovelace",
            "customer_email": "ada@example.com",
            "delivery": {
                "delivery_type": "shipping",
                "street": "1 Analytical Way",
                "city": "London",
                "zip": "N1 7AA",
            },
            "payment_method": "card",
            "items": [{"product_id": "p1", "quantity": 2}],
        }
        data.update(overrides)
        return data
    return build


@pytest.fixture
def pickup_delivery():
    def build(**overrides) -> dict:
        delivery = {
            "delivery_type": "pickup",
            "location_id": "loc-1",
            "pickup_date": (TODAY + timedelta(days=1)).isoformat(),
            "pickup_time": "12:00",
        }
        delivery.update(overrides)
        return delivery
    return build


@pytest.fixture
def place_order(db, lifecycle, customer, checkout_data):
    async def place(identity=None, **overrides):
        data = CheckoutRequest(**checkout_data(**overrides))
        return await lifecycle.create_order(db, data, identity or customer)
    return place


@pytest.fixture
def pay_order(db, lifecycle, gateway, admin):
    async def pay(order, payment_reference=None):
        handle = await lifecycle.request_payment_session(db, order.id, admin)
        gateway.complete_session(handle.session_id, payment_reference)
        result = await lifecycle.verify_payment(db, handle.session_id)
        return result.order
    return pay


# --- HTTP ---

@pytest.fixture
def app(session_factory, seeded, lifecycle):
    app = FastAPI()
    app.state.limiter = limiter
    register_exception_handlers(app)

    app.include_router(product_router, prefix="/products")
    app.include_router(order_public_router, prefix="/orders")
    app.include_router(order_router, prefix="/orders")
    app.include_router(payment_public_router, prefix="/payments")
    app.include_router(payment_router, prefix="/payments")

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lifecycle] = lambda: lifecycle
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
