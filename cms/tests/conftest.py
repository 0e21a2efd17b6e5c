import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from cms.core.db import get_session
from cms.core.dependencies.auth import Role
from cms.core.security import create_access_token, hash_password
from cms.main import app
from cms.models import Abastecedor, Admin, Client, Driver
from cms.services.verification_service import VerificationResult, get_verification_service
from cms.utils.otp_cache import OtpCache, OtpStatus
from cms.utils.uploads import uploader

DRIVER_CPF = "52998224725"
ABASTECEDOR_CPF = "11144477735"
CLIENT_CPF = "12345678909"
DRIVER_PHONE = "11987654321"


class FakeVerificationService:
    """Substitui o Twilio: guarda os códigos enviados num OtpCache local."""

    def __init__(self):
        self.cache = OtpCache(ttl_seconds=300)
        self.sent = []

    def send_code(self, phone, channel):
        self.sent.append((phone, channel.value))
        self.cache.put(phone, "123456")
        return {"success": True, "channel": channel.value}

    def check_code(self, phone, code):
        result = self.cache.check(phone, code)
        if result is None:
            return VerificationResult(valid=False, status="not_found")
        return VerificationResult(valid=result == OtpStatus.APPROVED, status=result.value)


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="verification")
def verification_fixture():
    return FakeVerificationService()


@pytest.fixture(name="client")
def client_fixture(session: Session, verification, tmp_path, monkeypatch):
    def get_session_override():
        return session
    monkeypatch.setattr(uploader, "base_path", str(tmp_path))
    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_verification_service] = lambda: verification
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(name="admin")
def admin_fixture(session: Session):
    admin = Admin(username="admin", password=hash_password("admin123"))
    session.add(admin)
    session.commit()
    session.refresh(admin)
    return admin


@pytest.fixture(name="admin_headers")
def admin_headers_fixture(admin):
    return auth_headers(create_access_token(admin.id, Role.ADMIN.value, username=admin.username))


@pytest.fixture(name="driver")
def driver_fixture(session: Session):
    driver = Driver(
        name="João Silva",
        plates=["ABC-1234"],
        price_per_km_ton=0.5,
        client="Transportes XYZ",
        authenticated=True,
        phone=DRIVER_PHONE,
        cpf=DRIVER_CPF,
        password=hash_password("1234"),
    )
    session.add(driver)
    session.commit()
    session.refresh(driver)
    return driver


@pytest.fixture(name="driver_headers")
def driver_headers_fixture(driver):
    return auth_headers(create_access_token(driver.id, Role.DRIVER.value, name=driver.name, plate=driver.plate))


@pytest.fixture(name="abastecedor")
def abastecedor_fixture(session: Session):
    abastecedor = Abastecedor(name="Carlos", cpf=ABASTECEDOR_CPF, password=hash_password("1234"))
    session.add(abastecedor)
    session.commit()
    session.refresh(abastecedor)
    return abastecedor


@pytest.fixture(name="abastecedor_headers")
def abastecedor_headers_fixture(abastecedor):
    return auth_headers(create_access_token(abastecedor.id, Role.ABASTECEDOR.value, name=abastecedor.name))


@pytest.fixture(name="cliente")
def cliente_fixture(session: Session):
    client = Client(
        empresa="Transportes XYZ",
        name="Maria",
        cpf=CLIENT_CPF,
        password=hash_password("senha123"),
    )
    session.add(client)
    session.commit()
    session.refresh(client)
    return client


@pytest.fixture(name="cliente_headers")
def cliente_headers_fixture(cliente):
    return auth_headers(create_access_token(cliente.id, Role.CLIENTE.value, empresa=cliente.empresa))
