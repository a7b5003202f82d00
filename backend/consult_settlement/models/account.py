"""
Account data owned by other services and read by the settlement workflow.
"""
from sqlalchemy import Column, String, Integer
from consult_settlement.db.base import Base


class ConsultingFee(Base):
    """Current hourly fee of a consultant."""
    __tablename__ = "consulting_fees"

    consultant_id = Column(Integer, primary_key=True, autoincrement=False)
    fee_per_hour_in_yen = Column(Integer, nullable=False)


class Tenant(Base):
    """Payment platform tenant that receives a consultant's charges."""
    __tablename__ = "tenants"

    consultant_id = Column(Integer, primary_key=True, autoincrement=False)
    tenant_id = Column(String(64), nullable=False, unique=True)


class BankAccount(Base):
    __tablename__ = "bank_accounts"

    user_account_id = Column(Integer, primary_key=True, autoincrement=False)
    bank_code = Column(String(4), nullable=False)
    branch_code = Column(String(3), nullable=False)
    account_type = Column(String(10), nullable=False)
    account_number = Column(String(8), nullable=False)
    account_holder_name = Column(String(255), nullable=False)


class Identity(Base):
    __tablename__ = "identities"

    user_account_id = Column(Integer, primary_key=True, autoincrement=False)
    last_name_furigana = Column(String(64), nullable=False)
    first_name_furigana = Column(String(64), nullable=False)
