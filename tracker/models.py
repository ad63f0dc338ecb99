# Table definitions for the SQL backend
import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class CategoryRow(Base):
    __tablename__ = "expense_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    icon = Column(String(16), nullable=False, server_default="💰")
    is_active = Column(Boolean, nullable=False, server_default="1")


class CashlessTypeRow(Base):
    __tablename__ = "cashless_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, server_default="1")


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    # naive UTC; sqlite keeps no offset
    expense_time = Column(DateTime, nullable=False, index=True)
    is_auto_time = Column(Boolean, nullable=False, default=True)
    category = Column(String(100), nullable=False)
    payment_type = Column(String(16), nullable=False)
    cashless_type = Column(String(100), nullable=True)
    total_amount = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
