import os

# antes de importar o app: banco em memória e chave fixa
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import date, time  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from marketplace.core.security import create_access_token  # noqa: E402
from marketplace.database import get_session  # noqa: E402
from marketplace.integrations.abacatepay import Billing, get_billing_client  # noqa: E402
from marketplace.integrations.ai_gateway import AIGatewayClient, get_ai_client  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.models.appointment import Appointment  # noqa: E402
from marketplace.models.quote import QuoteCreate  # noqa: E402
from marketplace.models.service import Service  # noqa: E402
from marketplace.models.user import User  # noqa: E402
from marketplace.services.quotes import create_quote  # noqa: E402


# =========================
# BANCO
# =========================

@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


# =========================
# FACTORIES
# =========================

@pytest.fixture
def user_factory(session):
    counter = {"n": 0}

    def make(role: str = "client", name=None, cpf=None, phone=None, password_hash="not-a-real-hash"):
        counter["n"] += 1
        user = User(
            name=name or f"{role.title()} {counter['n']}",
            email=f"{role}{counter['n']}@example.com",
            role=role,
            cpf=cpf,
            phone=phone,
            password_hash=password_hash,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return make


@pytest.fixture
def professional(user_factory):
    return user_factory("professional", name="Ana Eletricista")


@pytest.fixture
def client_user(user_factory):
    return user_factory("client", name="Bruno Cliente", cpf="123.456.789-09", phone="11999990000")


@pytest.fixture
def quote_factory(session, professional, client_user):
    def make(price=1000.0, validity_days=7, title="Instalação elétrica", now=None, client=None, pro=None):
        data = QuoteCreate(
            client_id=(client or client_user).id,
            title=title,
            description="Troca de fiação da cozinha",
            price=price,
            validity_days=validity_days,
            conversation_id="conv-1",
        )
        return create_quote(session, pro or professional, data, now=now)

    return make


@pytest.fixture
def appointment_factory(session, professional, client_user):
    def make(day: date, start: time, duration=60, status="confirmed", pro=None, client=None, **extra):
        appt = Appointment(
            professional_id=(pro or professional).id,
            client_id=(client or client_user).id,
            title=extra.pop("title", "Visita técnica"),
            scheduled_date=day,
            scheduled_time=start,
            duration_minutes=duration,
            status=status,
            **extra,
        )
        session.add(appt)
        session.commit()
        session.refresh(appt)
        return appt

    return make


@pytest.fixture
def catalog_service(session, professional):
    service = Service(
        name="Troca de tomada",
        description="Preço fechado por ponto",
        duration_minutes=45,
        price=120.0,
        professional_id=professional.id,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


# =========================
# PROVEDORES EXTERNOS FALSOS
# =========================

class FakeBilling:
    """Substitui o AbacatePayClient guardando as cobranças em memória."""

    def __init__(self):
        self.billings: list[Billing] = []
        self.created: list[dict] = []
        self.list_calls = 0

    def create_billing(self, **kwargs) -> Billing:
        self.created.append(kwargs)
        billing = Billing(
            id=f"bill_{len(self.created)}",
            url=f"https://pay.example.com/bill_{len(self.created)}",
            status="PENDING",
            amount=kwargs["amount_cents"],
            metadata={"quote_id": str(kwargs["correlation_id"])},
        )
        self.billings.append(billing)
        return billing

    def list_billings(self) -> list[Billing]:
        self.list_calls += 1
        return list(self.billings)

    def mark_paid(self, quote_id) -> None:
        for billing in self.billings:
            if billing.matches(quote_id):
                billing.status = "PAID"


@pytest.fixture
def billing():
    return FakeBilling()


def ai_client_returning(handler) -> AIGatewayClient:
    return AIGatewayClient(
        api_key="test-key",
        url="https://ai.example.com/v1/chat/completions",
        model="test-model",
        transport=httpx.MockTransport(handler),
    )


def chat_answer(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def ai():
    client = ai_client_returning(lambda request: chat_answer('{"approved": true}'))
    yield client
    client.close()


# =========================
# API
# =========================

@pytest.fixture
def api(session, billing, ai):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_billing_client] = lambda: billing
    app.dependency_overrides[get_ai_client] = lambda: ai
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.email})
    return {"Authorization": f"Bearer {token}"}
