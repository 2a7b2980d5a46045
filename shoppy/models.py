# shoppy/models.py
from sqlalchemy import (
    Column, Integer, String, Numeric, JSON, TIMESTAMP, func, Text, ForeignKey,
    Boolean, UniqueConstraint,
)
from .db import Base
import uuid
from datetime import datetime, timezone

def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)

def gen_uuid():
    return str(uuid.uuid4())

class User(Base):
    __tablename__ = "users"
    user_id = Column(String, primary_key=True, default=gen_uuid)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    sensay_user_id = Column(String, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

class ChatSession(Base):
    __tablename__ = "chat_sessions"
    session_id = Column(String, primary_key=True, default=gen_uuid)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=True, index=True)
    title = Column(String, nullable=False, default="New Chat")
    is_active = Column(Boolean, nullable=False, default=True)
    # numbered product options most recently shown by the assistant
    last_options = Column(JSON, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, onupdate=utcnow, server_default=func.now())

class ChatMessage(Base):
    __tablename__ = "chat_messages"
    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String, ForeignKey("chat_sessions.session_id"), nullable=False, index=True)
    role = Column(String, nullable=False)  # "user" | "assistant" | "system"
    content = Column(Text, nullable=False)
    payload = Column(JSON, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

class CartItem(Base):
    __tablename__ = "cart_items"
    __table_args__ = (UniqueConstraint("user_id", "product_id", name="uq_cart_user_product"),)
    cart_item_id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    product_id = Column(String, nullable=False)
    product_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10,2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    total = Column(Numeric(10,2), nullable=False)
    image_url = Column(String, nullable=True)
    product_url = Column(String, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

class PurchaseHistory(Base):
    __tablename__ = "purchase_history"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    order_id = Column(String, nullable=False, index=True)
    product_id = Column(String, nullable=False)
    product_name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10,2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total = Column(Numeric(10,2), nullable=False)
    image_url = Column(String, nullable=True)
    product_url = Column(String, nullable=True)
    status = Column(String, nullable=False, default="completed")
    purchased_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
