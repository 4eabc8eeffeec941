# Standard Library
import json
from datetime import timedelta
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, List, Optional

# Third-Party Libraries
import pytest
import pytest_asyncio

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

# First-Party Libraries (Your project)
import devisfacture.models  # noqa: F401  (enregistre toutes les tables)
from devisfacture.main import app
from devisfacture.database import get_db_session
from devisfacture.auth.security import get_password_hash, create_access_token
from devisfacture.billing.dependencies import get_billing_gateway
from devisfacture.billing.exceptions import WebhookSignatureException
from devisfacture.billing.gateway import AbstractBillingGateway
from devisfacture.clients.models import Client
from devisfacture.core.utils import utcnow
from devisfacture.pdf.content import DocumentContent
from devisfacture.pdf.dependencies import get_pdf_generator
from devisfacture.pdf.generator import AbstractPDFGenerator
from devisfacture.products.models import Product
from devisfacture.profiles.models import Profile
from devisfacture.subscriptions.constants import SubscriptionStatus
from devisfacture.subscriptions.models import MainPlan, PremiumOption
from devisfacture.users.models import User

# URL de base pour la DB en mémoire
TEST_DATABASE_BASE_URL = "sqlite+aiosqlite:///:memory:"

# --- Fixtures de Base ---

@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Crée un engine, des tables, et fournit une session DB en mémoire pour chaque test."""
    # StaticPool : une seule connexion, donc une seule base :memory: partagée
    engine: AsyncEngine = create_async_engine(TEST_DATABASE_BASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    TestingSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with TestingSessionLocal() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Fournit un AsyncClient httpx qui utilise la session DB de test isolée."""
    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    del app.dependency_overrides[get_db_session]

# --- Fixtures Utilisateur et Abonnement ---

async def create_user(
    db_session: AsyncSession,
    email: str,
    main_status: SubscriptionStatus = SubscriptionStatus.TRIAL,
    premium_active: bool = False,
    trial_days_left: int = 20,
    raison_sociale: Optional[str] = "Atelier Test",
) -> User:
    """Crée un utilisateur avec profil, abonnement principal et option premium."""
    now = utcnow()
    user = User(email=email, name="Artisan Test", password_hash=get_password_hash("testpassword"))
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    main_plan = MainPlan(user_id=user.id, status=main_status.value)
    if main_status == SubscriptionStatus.TRIAL:
        main_plan.trial_start = now - timedelta(days=30 - trial_days_left)
        main_plan.trial_end = now + timedelta(days=trial_days_left)
    elif main_status == SubscriptionStatus.ACTIVE:
        main_plan.plan = "monthly"
        main_plan.stripe_customer_id = f"cus_{user.id}"
        main_plan.stripe_subscription_id = f"sub_main_{user.id}"
        main_plan.current_period_start = now - timedelta(days=5)
        main_plan.current_period_end = now + timedelta(days=25)

    premium = PremiumOption(user_id=user.id, active=premium_active)
    if premium_active:
        premium.plan = "monthly"
        premium.stripe_subscription_id = f"sub_premium_{user.id}"
        premium.period_start = now - timedelta(days=5)
        premium.period_end = now + timedelta(days=25)

    db_session.add_all([
        Profile(user_id=user.id, raison_sociale=raison_sociale, email_contact=email),
        main_plan,
        premium,
    ])
    await db_session.commit()
    return user


def auth_headers_for(user: User) -> Dict[str, str]:
    access_token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {access_token}"}


@pytest_asyncio.fixture(scope="function")
async def trial_user(db_session: AsyncSession) -> User:
    """Utilisateur en période d'essai."""
    return await create_user(db_session, "essai@example.com")


@pytest_asyncio.fixture(scope="function")
async def active_user(db_session: AsyncSession) -> User:
    """Utilisateur avec abonnement principal actif, sans option premium."""
    return await create_user(db_session, "actif@example.com", main_status=SubscriptionStatus.ACTIVE)


@pytest_asyncio.fixture(scope="function")
async def premium_user(db_session: AsyncSession) -> User:
    """Utilisateur avec abonnement principal actif et option premium active."""
    return await create_user(
        db_session, "premium@example.com", main_status=SubscriptionStatus.ACTIVE, premium_active=True
    )


@pytest_asyncio.fixture(scope="function")
async def expired_user(db_session: AsyncSession) -> User:
    """Utilisateur dont l'essai est terminé."""
    return await create_user(db_session, "expire@example.com", trial_days_left=-1)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_trial(trial_user: User) -> Dict[str, str]:
    return auth_headers_for(trial_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_active(active_user: User) -> Dict[str, str]:
    return auth_headers_for(active_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_premium(premium_user: User) -> Dict[str, str]:
    return auth_headers_for(premium_user)


@pytest_asyncio.fixture(scope="function")
async def auth_headers_expired(expired_user: User) -> Dict[str, str]:
    return auth_headers_for(expired_user)

# --- Fixtures Métier ---

@pytest_asyncio.fixture(scope="function")
async def client_of_active_user(db_session: AsyncSession, active_user: User) -> Client:
    client = Client(
        user_id=active_user.id,
        name="Jean Dupont",
        email="jean.dupont@example.com",
        address="12 rue des Lilas",
        postal_code="75011",
        city="Paris",
    )
    db_session.add(client)
    await db_session.commit()
    await db_session.refresh(client)
    return client


@pytest_asyncio.fixture(scope="function")
async def client_of_premium_user(db_session: AsyncSession, premium_user: User) -> Client:
    client = Client(user_id=premium_user.id, name="Marie Martin", city="Lyon")
    db_session.add(client)
    await db_session.commit()
    await db_session.refresh(client)
    return client


@pytest_asyncio.fixture(scope="function")
async def stocked_product(db_session: AsyncSession, premium_user: User) -> Product:
    product = Product(
        user_id=premium_user.id,
        designation="Sac de terreau 50L",
        reference="TER-50",
        default_price_ht=Decimal("12.50"),
        stock_tracked=True,
        minimum_stock=Decimal("5"),
        current_stock=Decimal("10"),
    )
    db_session.add(product)
    await db_session.commit()
    await db_session.refresh(product)
    return product


@pytest.fixture
def accepted_quote_payload():
    """Corps de création d'un devis de 200 € HT à 20 % (240 € TTC)."""
    def _build(client_id: int) -> Dict[str, Any]:
        return {
            "client_id": client_id,
            "notes": "Travaux de jardin",
            "lines": [
                {"designation": "Taille de haie", "quantity": "2", "unit_price_ht": "100", "tax_rate": "20"},
            ],
        }
    return _build

# --- Passerelle de paiement factice ---

class MockBillingGateway(AbstractBillingGateway):
    """Passerelle en mémoire : enregistre les appels, n'accède jamais à Stripe."""

    def __init__(self):
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.checkout_calls: List[Dict[str, Any]] = []
        self.portal_calls: List[Dict[str, Any]] = []
        self.reject_signature = False

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        if self.reject_signature:
            raise WebhookSignatureException("Signature Stripe invalide.")
        return json.loads(payload)

    async def create_customer(self, email: Optional[str], metadata: Dict[str, str]) -> str:
        customer_id = f"cus_mock_{len(self.customers) + 1}"
        self.customers[customer_id] = {"email": email, "metadata": metadata}
        return customer_id

    async def get_customer_metadata(self, customer_id: str) -> Optional[Dict[str, Any]]:
        customer = self.customers.get(customer_id)
        return customer["metadata"] if customer else None

    async def create_checkout_session(self, *, customer_id, price_id, success_url, cancel_url,
                                      metadata, subscription_metadata=None) -> str:
        self.checkout_calls.append({
            "customer_id": customer_id,
            "price_id": price_id,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "subscription_metadata": subscription_metadata,
        })
        return f"https://checkout.stripe.test/session/{len(self.checkout_calls)}"

    async def create_portal_session(self, *, customer_id: str, return_url: str) -> str:
        self.portal_calls.append({"customer_id": customer_id, "return_url": return_url})
        return "https://billing.stripe.test/portal"


@pytest.fixture
def mock_billing_gateway() -> MockBillingGateway:
    return MockBillingGateway()


@pytest_asyncio.fixture(scope="function")
async def test_client_with_mock_billing(
    test_client: AsyncClient, mock_billing_gateway: MockBillingGateway
) -> AsyncGenerator[AsyncClient, None]:
    """Client de test dont la passerelle Stripe est remplacée par MockBillingGateway."""
    app.dependency_overrides[get_billing_gateway] = lambda: mock_billing_gateway
    yield test_client
    app.dependency_overrides.pop(get_billing_gateway, None)

# --- Générateur PDF factice ---

class MockPDFGenerator(AbstractPDFGenerator):
    """Générateur PDF qui mémorise le contenu reçu et retourne des octets fixes."""

    def __init__(self):
        self.contents: List[DocumentContent] = []

    async def generate_document_pdf(self, content: DocumentContent) -> bytes:
        self.contents.append(content)
        return b"%PDF-mock"


@pytest.fixture
def mock_pdf_generator() -> MockPDFGenerator:
    return MockPDFGenerator()


@pytest_asyncio.fixture(scope="function")
async def test_client_with_mock_pdf(
    test_client: AsyncClient, mock_pdf_generator: MockPDFGenerator
) -> AsyncGenerator[AsyncClient, None]:
    """Fournit un client de test avec le générateur PDF mocké."""
    original_overrides = app.dependency_overrides.copy()
    app.dependency_overrides[get_pdf_generator] = lambda: mock_pdf_generator
    yield test_client
    app.dependency_overrides = original_overrides
