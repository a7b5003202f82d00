"""
Shared fixtures: in-memory database, fake payment platform, frozen clock and tokens.
"""
import os

# Settings are read at import time; keep tests off the production database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from consult_settlement.api.dependencies import (
    get_current_time, get_payment_gateway, get_settlement_policy
)
from consult_settlement.core.config import JAPANESE_TIME_ZONE, SettlementPolicy
from consult_settlement.core.security import ROLE_ADMIN, ROLE_USER, create_access_token
from consult_settlement.db.base import Base
from consult_settlement.db.session import get_db
from consult_settlement.main import app
from consult_settlement.models import (
    AwaitingPayment, AwaitingWithdrawal, BankAccount, Consultation, ConsultantRating,
    ConsultingFee, Identity, Receipt, Refund, Settlement, StoppedSettlement, Tenant, UserRating
)
from consult_settlement.services.payment_gateway import Charge, PaymentGatewayError

JST = JAPANESE_TIME_ZONE
MEETING_AT = datetime(2023, 6, 10, 10, 0, tzinfo=JST)
CREDIT_FACILITIES_EXPIRED_AT = datetime(2023, 6, 20, 10, 0, tzinfo=JST)
AFTER_MEETING = MEETING_AT + timedelta(hours=2)

USER_ACCOUNT_ID = 10
CONSULTANT_ID = 20
ADMIN_ID = 1
ADMIN_EMAIL = "admin@example.com"


class FakePaymentGateway:
    """Records calls instead of talking to the payment platform."""

    def __init__(self):
        self.calls = []
        self.failing = set()
        self._next_charge = 1

    def create_hold(self, amount, card_token, tenant_id, expiry_days, metadata=None):
        self._record("create_hold", amount=amount, card_token=card_token,
                     tenant_id=tenant_id, expiry_days=expiry_days)
        charge_id = f"ch_fake_{self._next_charge}"
        self._next_charge += 1
        return Charge(id=charge_id, amount=amount)

    def capture(self, charge_id):
        self._record("capture", charge_id=charge_id)
        return Charge(id=charge_id, amount=0, captured=True)

    def refund(self, charge_id, reason=None):
        self._record("refund", charge_id=charge_id, reason=reason)
        return Charge(id=charge_id, amount=0, refunded=True)

    def calls_of(self, operation):
        return [kwargs for name, kwargs in self.calls if name == operation]

    def _record(self, operation, **kwargs):
        if operation in self.failing:
            raise PaymentGatewayError(f"{operation} failed", status_code=402)
        self.calls.append((operation, kwargs))


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now


class Seeder:
    """Inserts rows the workflow reads."""

    def __init__(self, db):
        self.db = db

    def _save(self, *rows):
        self.db.add_all(rows)
        self.db.commit()
        return rows[0]

    def consultation(self, consultation_id=1, user_account_id=USER_ACCOUNT_ID,
                     consultant_id=CONSULTANT_ID, meeting_at=MEETING_AT, rated=False):
        rating = 5 if rated else None
        rated_at = meeting_at + timedelta(hours=1, minutes=5) if rated else None
        return self._save(
            Consultation(id=consultation_id, user_account_id=user_account_id, consultant_id=consultant_id,
                         meeting_at=meeting_at, room_name=uuid4().hex),
            UserRating(consultation_id=consultation_id, rating=rating, rated_at=rated_at),
            ConsultantRating(consultation_id=consultation_id, rating=rating, rated_at=rated_at),
        )

    def settlement(self, settlement_id=1, consultation_id=1, charge_id="ch_1", fee_per_hour_in_yen=5000,
                   expired_at=CREDIT_FACILITIES_EXPIRED_AT):
        return self._save(Settlement(
            id=settlement_id, consultation_id=consultation_id, charge_id=charge_id,
            fee_per_hour_in_yen=fee_per_hour_in_yen, platform_fee_rate_in_percentage=Decimal("30.00"),
            credit_facilities_expired_at=expired_at,
        ))

    def stopped_settlement(self, stopped_settlement_id=1, consultation_id=1, charge_id="ch_1",
                           fee_per_hour_in_yen=5000, expired_at=CREDIT_FACILITIES_EXPIRED_AT):
        return self._save(StoppedSettlement(
            id=stopped_settlement_id, consultation_id=consultation_id, charge_id=charge_id,
            fee_per_hour_in_yen=fee_per_hour_in_yen, platform_fee_rate_in_percentage=Decimal("30.00"),
            credit_facilities_expired_at=expired_at, stopped_at=MEETING_AT + timedelta(hours=3),
        ))

    def awaiting_payment(self, consultation_id=1, user_account_id=USER_ACCOUNT_ID, meeting_at=MEETING_AT,
                         fee_per_hour_in_yen=5000):
        return self._save(AwaitingPayment(
            consultation_id=consultation_id, consultant_id=CONSULTANT_ID, user_account_id=user_account_id,
            meeting_at=meeting_at, fee_per_hour_in_yen=fee_per_hour_in_yen, created_at=AFTER_MEETING,
        ))

    def awaiting_withdrawal(self, consultation_id=1, meeting_at=MEETING_AT, fee_per_hour_in_yen=5000):
        return self._save(AwaitingWithdrawal(
            consultation_id=consultation_id, consultant_id=CONSULTANT_ID, user_account_id=USER_ACCOUNT_ID,
            meeting_at=meeting_at, fee_per_hour_in_yen=fee_per_hour_in_yen,
            sender_name="ヤマダ　タロウ　０６１０１０", payment_confirmed_by=ADMIN_EMAIL, created_at=AFTER_MEETING,
        ))

    def receipt(self, consultation_id=1, charge_id="ch_1", fee_per_hour_in_yen=5000):
        return self._save(Receipt(
            consultation_id=consultation_id, charge_id=charge_id, fee_per_hour_in_yen=fee_per_hour_in_yen,
            platform_fee_rate_in_percentage=Decimal("30.00"), settled_at=AFTER_MEETING,
        ))

    def refund(self, consultation_id=1, charge_id="ch_1", fee_per_hour_in_yen=5000):
        return self._save(Refund(
            consultation_id=consultation_id, charge_id=charge_id, fee_per_hour_in_yen=fee_per_hour_in_yen,
            platform_fee_rate_in_percentage=Decimal("30.00"), refunded_at=AFTER_MEETING,
        ))

    def identity(self, user_account_id=USER_ACCOUNT_ID, last_name_furigana="ヤマダ", first_name_furigana="タロウ"):
        return self._save(Identity(
            user_account_id=user_account_id, last_name_furigana=last_name_furigana,
            first_name_furigana=first_name_furigana,
        ))

    def bank_account(self, user_account_id=CONSULTANT_ID):
        return self._save(BankAccount(
            user_account_id=user_account_id, bank_code="0001", branch_code="001", account_type="普通",
            account_number="1234567", account_holder_name="スズキ　ジロウ",
        ))

    def consultant(self, consultant_id=CONSULTANT_ID, fee_per_hour_in_yen=5000, tenant_id="tenant_20"):
        return self._save(
            ConsultingFee(consultant_id=consultant_id, fee_per_hour_in_yen=fee_per_hour_in_yen),
            Tenant(consultant_id=consultant_id, tenant_id=tenant_id),
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def policy():
    return SettlementPolicy()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def clock():
    return FrozenClock(AFTER_MEETING)


@pytest.fixture
def client(session_factory, policy, gateway, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settlement_policy] = lambda: policy
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_current_time] = lambda: clock.now
    yield TestClient(app)
    app.dependency_overrides.clear()


def bearer(account_id: int, role: str, email: str) -> dict:
    token = create_access_token({"sub": str(account_id), "role": role, "email": email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return bearer(ADMIN_ID, ROLE_ADMIN, ADMIN_EMAIL)


@pytest.fixture
def user_headers():
    return bearer(USER_ACCOUNT_ID, ROLE_USER, "user@example.com")


@pytest.fixture
def consultant_headers():
    return bearer(CONSULTANT_ID, ROLE_USER, "consultant@example.com")
