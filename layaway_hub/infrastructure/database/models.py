"""SQLAlchemy ORM models for financing requests, trust ledger and configuration"""

import uuid
from sqlalchemy import Column, String, BigInteger, Boolean, DateTime, Integer, Text, JSON, Index
from sqlalchemy.orm import declarative_base

from layaway_hub.utils.date_utils import utcnow

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class FinancingRequestRow(Base):
    """Layaway request record - never physically deleted"""

    __tablename__ = "financing_request"

    id = Column(String(36), primary_key=True, default=_new_id)
    customer_id = Column(Text, nullable=True, index=True)
    customer_name = Column(Text, nullable=False)
    email = Column(Text, nullable=False, index=True)
    phone = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    product_id = Column(Text, nullable=True)
    product_name = Column(Text, nullable=False)
    product_category = Column(Text, nullable=False)
    total_amount = Column(BigInteger, nullable=False)
    interest_rate_at_request = Column(Integer, nullable=False)
    total_with_interest = Column(BigInteger, nullable=False)
    plan_months = Column(Integer, nullable=False)
    amount_paid = Column(BigInteger, nullable=False, default=0)
    status = Column(String(16), nullable=False, default="pending")
    refunded = Column(Boolean, nullable=False, default=False)
    refund_amount = Column(BigInteger, nullable=False, default=0)
    trust_stars = Column(Integer, nullable=True)
    admin_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    approved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    last_payment_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_financing_request_visible_created", "admin_deleted", "created_at"),
    )


class TrustRecordRow(Base):
    """Lifetime delivered-layaway counter per normalized email"""

    __tablename__ = "trust_record"

    email_key = Column(Text, primary_key=True)
    success_count = Column(Integer, nullable=False, default=0)
    last_success_at = Column(DateTime, nullable=True)


class FinancingConfigurationRow(Base):
    """Singleton row (id=1) holding the global markup and eligible categories"""

    __tablename__ = "financing_configuration"

    SINGLETON_ID = 1

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    interest_rate_percent = Column(Integer, nullable=True)
    allowed_categories = Column(JSON, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
