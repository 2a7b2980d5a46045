# shoppy/crud.py
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User, ChatSession, ChatMessage, CartItem, PurchaseHistory
from typing import List, Dict, Optional, Tuple, Any
import uuid
from decimal import Decimal, ROUND_HALF_UP
from passlib.context import CryptContext


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

CENT = Decimal("0.01")

def to_money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)

def money_float(value: Any) -> float:
    return float(to_money(value))


# ---------- User auth helpers ----------
async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(User.email == email.lower())
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    q = select(User).where(User.username == username)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_user_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    q = select(User).where(User.user_id == user_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_user_by_login(db: AsyncSession, email_or_username: str) -> Optional[User]:
    q = select(User).where(
        (User.email == email_or_username.lower()) | (User.username == email_or_username)
    )
    r = await db.execute(q)
    return r.scalars().first()

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)

async def create_user(db: AsyncSession, email: str, username: str, password: str) -> User:
    hashed = hash_password(password)
    user_id = str(uuid.uuid4())
    stmt = insert(User).values(
        user_id=user_id, email=email.lower(), username=username, password_hash=hashed
    )
    await db.execute(stmt)
    await db.commit()
    return await get_user_by_id(db, user_id)

async def set_sensay_user_id(db: AsyncSession, user: User, sensay_user_id: str) -> None:
    user.sensay_user_id = sensay_user_id
    await db.commit()

def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.user_id,
        "email": user.email,
        "username": user.username,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
    }


# ---------- Chat sessions ----------
def session_title_from(message: str) -> str:
    title = " ".join(message.split()[:4])
    return title[:30] + "..." if len(title) > 30 else title

async def create_chat_session(db: AsyncSession, user_id: Optional[str], title: str = "New Chat") -> ChatSession:
    session = ChatSession(session_id=str(uuid.uuid4()), user_id=user_id, title=title, is_active=True)
    db.add(session)
    await db.flush()
    return session

async def get_chat_session(db: AsyncSession, session_id: str, active_only: bool = True) -> Optional[ChatSession]:
    q = select(ChatSession).where(ChatSession.session_id == session_id)
    if active_only:
        q = q.where(ChatSession.is_active.is_(True))
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def list_sessions_for_user(db: AsyncSession, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
    q = (
        select(ChatSession)
        .where(ChatSession.user_id == user_id, ChatSession.is_active.is_(True))
        .order_by(ChatSession.updated_at.desc())
        .limit(limit)
    )
    r = await db.execute(q)
    sessions = r.scalars().all()
    if not sessions:
        return []

    ids = [s.session_id for s in sessions]
    counts_q = (
        select(ChatMessage.session_id, func.count(ChatMessage.id))
        .where(ChatMessage.session_id.in_(ids))
        .group_by(ChatMessage.session_id)
    )
    counts = dict((await db.execute(counts_q)).all())

    out = []
    for s in sessions:
        last_q = (
            select(ChatMessage.content)
            .where(ChatMessage.session_id == s.session_id)
            .order_by(ChatMessage.id.desc())
            .limit(1)
        )
        last = (await db.execute(last_q)).scalar_one_or_none()
        item = serialize_session(s)
        item["messageCount"] = counts.get(s.session_id, 0)
        item["lastMessage"] = last
        out.append(item)
    return out

async def deactivate_session(db: AsyncSession, session_id: str) -> None:
    stmt = update(ChatSession).where(ChatSession.session_id == session_id).values(is_active=False)
    await db.execute(stmt)
    await db.commit()

def serialize_session(s: ChatSession) -> Dict[str, Any]:
    return {
        "id": s.session_id,
        "title": s.title,
        "isActive": s.is_active,
        "createdAt": s.created_at.isoformat() if s.created_at else None,
        "updatedAt": s.updated_at.isoformat() if s.updated_at else None,
    }


# ---------- Chat messages ----------
# no commit: the orchestrator persists both sides of a turn together
async def add_chat_message(db: AsyncSession, session_id: str, role: str, content: str, payload: Optional[Dict] = None) -> ChatMessage:
    msg = ChatMessage(session_id=session_id, role=role, content=content, payload=payload)
    db.add(msg)
    await db.flush()
    return msg

async def count_messages(db: AsyncSession, session_id: str) -> int:
    q = select(func.count(ChatMessage.id)).where(ChatMessage.session_id == session_id)
    return (await db.execute(q)).scalar_one()

async def get_messages_for_session(db: AsyncSession, session_id: str, limit: int = 100) -> List[ChatMessage]:
    q = select(ChatMessage).where(ChatMessage.session_id == session_id).order_by(ChatMessage.id.desc()).limit(limit)
    r = await db.execute(q)
    return list(reversed(r.scalars().all()))

async def get_history_for_user(db: AsyncSession, user_id: str, limit: int = 50) -> List[ChatMessage]:
    q = (
        select(ChatMessage)
        .join(ChatSession, ChatSession.session_id == ChatMessage.session_id)
        .where(ChatSession.user_id == user_id, ChatSession.is_active.is_(True))
        .order_by(ChatMessage.id.desc())
        .limit(limit)
    )
    r = await db.execute(q)
    return list(reversed(r.scalars().all()))

def serialize_message(m: ChatMessage) -> Dict[str, Any]:
    payload = m.payload or {}
    out = {
        "id": m.id,
        "sessionId": m.session_id,
        "role": m.role,
        "content": m.content,
        "timestamp": m.created_at.isoformat() if m.created_at else None,
    }
    if payload.get("shopifyProducts"):
        out["shopifyProducts"] = payload["shopifyProducts"]
    if payload.get("cartAction"):
        out["cartAction"] = payload["cartAction"]
    return out


# ---------- Cart ----------
async def get_cart_items(db: AsyncSession, user_id: str) -> List[CartItem]:
    q = select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.created_at.desc())
    r = await db.execute(q)
    return r.scalars().all()

async def get_cart_item(db: AsyncSession, user_id: str, cart_item_id: str) -> Optional[CartItem]:
    q = select(CartItem).where(CartItem.cart_item_id == cart_item_id, CartItem.user_id == user_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

async def get_cart_item_by_product(db: AsyncSession, user_id: str, product_id: str) -> Optional[CartItem]:
    q = select(CartItem).where(CartItem.user_id == user_id, CartItem.product_id == product_id)
    r = await db.execute(q)
    return r.scalar_one_or_none()

# no commit: callers own the transaction
async def upsert_cart_item(db: AsyncSession, user_id: str, item: Dict[str, Any]) -> Tuple[CartItem, bool]:
    """
    Insert a cart row, or merge into the existing (user, product) row.

    `item` keys: product_id, product_name, price, quantity and optionally
    description, image_url, product_url. Returns (row, was_update).
    """
    qty = int(item.get("quantity") or 1)
    price = to_money(item.get("price"))
    existing = await get_cart_item_by_product(db, user_id, item["product_id"])
    if existing:
        existing.quantity = int(existing.quantity) + qty
        existing.price = price
        existing.total = to_money(price * existing.quantity)
        await db.flush()
        return existing, True

    row = CartItem(
        cart_item_id="CI-" + uuid.uuid4().hex[:8],
        user_id=user_id,
        product_id=item["product_id"],
        product_name=item["product_name"],
        description=item.get("description") or "",
        price=price,
        quantity=qty,
        total=to_money(price * qty),
        image_url=item.get("image_url"),
        product_url=item.get("product_url"),
    )
    db.add(row)
    await db.flush()
    return row, False

async def cart_totals(db: AsyncSession, user_id: str) -> Tuple[int, float]:
    q = select(func.count(CartItem.cart_item_id), func.coalesce(func.sum(CartItem.total), 0)).where(
        CartItem.user_id == user_id
    )
    count, total = (await db.execute(q)).one()
    return int(count), money_float(total)

async def update_cart_item_quantity(db: AsyncSession, item: CartItem, quantity: int) -> CartItem:
    item.quantity = quantity
    item.total = to_money(to_money(item.price) * quantity)
    await db.commit()
    return item

async def remove_cart_item(db: AsyncSession, user_id: str, cart_item_id: str) -> bool:
    r = await db.execute(
        delete(CartItem).where(CartItem.cart_item_id == cart_item_id, CartItem.user_id == user_id)
    )
    await db.commit()
    return r.rowcount > 0

async def clear_cart(db: AsyncSession, user_id: str, commit: bool = True) -> int:
    r = await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    if commit:
        await db.commit()
    return r.rowcount

def serialize_cart_item(i: CartItem) -> Dict[str, Any]:
    return {
        "id": i.cart_item_id,
        "productId": i.product_id,
        "productName": i.product_name,
        "description": i.description,
        "price": money_float(i.price),
        "quantity": int(i.quantity),
        "total": money_float(i.total),
        "imageUrl": i.image_url,
        "productUrl": i.product_url,
        "createdAt": i.created_at.isoformat() if i.created_at else None,
    }


# ---------- Purchases ----------
async def get_purchases_for_user(db: AsyncSession, user_id: str, limit: int = 100) -> List[PurchaseHistory]:
    q = (
        select(PurchaseHistory)
        .where(PurchaseHistory.user_id == user_id)
        .order_by(PurchaseHistory.purchased_at.desc(), PurchaseHistory.id.desc())
        .limit(limit)
    )
    r = await db.execute(q)
    return r.scalars().all()

async def get_purchases_for_order(db: AsyncSession, user_id: str, order_id: str) -> List[PurchaseHistory]:
    q = select(PurchaseHistory).where(
        PurchaseHistory.user_id == user_id, PurchaseHistory.order_id == order_id
    ).order_by(PurchaseHistory.id)
    r = await db.execute(q)
    return r.scalars().all()

def serialize_purchase(p: PurchaseHistory) -> Dict[str, Any]:
    return {
        "id": p.id,
        "orderId": p.order_id,
        "productId": p.product_id,
        "productName": p.product_name,
        "description": p.description,
        "price": money_float(p.price),
        "quantity": int(p.quantity),
        "total": money_float(p.total),
        "imageUrl": p.image_url,
        "productUrl": p.product_url,
        "status": p.status,
        "purchaseDate": p.purchased_at.isoformat() if p.purchased_at else None,
    }
