# shoppy/agents/orchestrator.py
"""
One chat turn, end to end.

    RECEIVED -> session resolved/created -> cart context injected (cart questions)
    -> AI_CALLED -> intent / extraction / reconciliation -> recommendations
    -> PERSISTED -> RESPONDED

The cart pipeline runs whether or not the AI call worked. Cart and
recommendation failures are reported in the response, never raised.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shoppy import crud
from shoppy.cache import CartCache
from shoppy.errors import (
    AIServiceError,
    AuthorizationError,
    NoMatchingProductError,
    NotFoundError,
    StorefrontError,
    ValidationError,
)
from shoppy.models import ChatSession, User, utcnow
from shoppy.sensay import SensayClient, external_user_id
from shoppy.shopify import Product, ShopifyClient
from .cart_agent import CartReconciler, failed_mutation
from .extractor import (
    ORIGIN_ASSISTANT,
    ORIGIN_SELECTION,
    ORIGIN_USER,
    CandidateProduct,
    OptionLine,
    ProductExtractor,
    coerce_options,
    parse_option_lines,
)
from .intent import SOURCE_ASSISTANT, SOURCE_SELECTION, SOURCE_USER, IntentDetector, IntentResult
from .lexicon import Lexicon, DEFAULT_LEXICON
from .rec_agent import find_recommended_products

logger = logging.getLogger(__name__)

NEW_CHAT_ID = "new-chat"
AI_UNAVAILABLE_REPLY = (
    "Sorry, I'm having trouble reaching the shopping assistant right now. Please try again in a moment."
)
EMPTY_CART_CONTEXT = "\n\n[Current Cart State: Your cart is empty. No items are currently in your cart.]"


async def get_owned_session(db: AsyncSession, user_id: str, session_id: str) -> ChatSession:
    """The caller's active session, else 404 (missing/deleted) or 403 (someone else's)."""
    session = await crud.get_chat_session(db, session_id, active_only=False)
    if session is None:
        raise NotFoundError("Chat session not found")
    if session.user_id != user_id:
        logger.warning("[CHAT] user=%s tried to use session %s", user_id, session_id)
        raise AuthorizationError("Invalid session access")
    if not session.is_active:
        raise NotFoundError("Chat session not found")
    return session


def format_cart_context(items: Sequence[Any]) -> str:
    if not items:
        return EMPTY_CART_CONTEXT
    details = ", ".join(
        f"{i.product_name} (Qty: {i.quantity}, ${crud.money_float(i.price):.2f} each)" for i in items
    )
    total = sum(crud.money_float(i.total) for i in items)
    return (
        f"\n\n[Current Cart State: You have {len(items)} item(s) in your cart: {details}. "
        f"Total: ${total:.2f}]"
    )


class ChatOrchestrator:
    def __init__(self, sensay: SensayClient, shopify: ShopifyClient,
                 cache: Optional[CartCache] = None, lexicon: Lexicon = DEFAULT_LEXICON):
        self.sensay = sensay
        self.shopify = shopify
        self.lexicon = lexicon
        self.detector = IntentDetector(lexicon)
        self.extractor = ProductExtractor(lexicon)
        self.reconciler = CartReconciler(shopify, cache, lexicon)

    async def resolve_session(self, db: AsyncSession, user_id: str, session_id: Optional[str],
                              is_new_chat: bool) -> Tuple[ChatSession, bool]:
        if is_new_chat or not session_id or session_id == NEW_CHAT_ID:
            session = await crud.create_chat_session(db, user_id)
            await db.commit()
            logger.info("[CHAT] created session %s for user=%s", session.session_id, user_id)
            return session, True
        return await get_owned_session(db, user_id, session_id), False

    async def cart_context(self, db: AsyncSession, user_id: str) -> str:
        try:
            return format_cart_context(await crud.get_cart_items(db, user_id))
        except SQLAlchemyError as e:
            logger.warning("[CHAT] could not load cart context for user=%s: %s", user_id, e)
            return ""

    async def ensure_sensay_user(self, db: AsyncSession, user: User) -> str:
        if user.sensay_user_id:
            return user.sensay_user_id
        sensay_id = await self.sensay.create_user(external_user_id(user.user_id))
        await crud.set_sensay_user_id(db, user, sensay_id)
        return sensay_id

    def resolve_candidate(self, intent: IntentResult, message: str, reply: str,
                          options: List[OptionLine]) -> Optional[CandidateProduct]:
        attempts = []
        if intent.source_hint == SOURCE_SELECTION:
            attempts.append((message, ORIGIN_SELECTION))
            # no option list to pick from still leaves a named product
            attempts.append((message, ORIGIN_USER))
        elif intent.source_hint == SOURCE_USER:
            attempts.append((message, ORIGIN_USER))
        # the reply is only mined when it confirms a cart action itself
        if reply and (intent.source_hint == SOURCE_ASSISTANT
                      or self.detector.detect("", reply).is_cart_intent):
            attempts.append((reply, ORIGIN_ASSISTANT))
        for text, origin in attempts:
            candidate = self.extractor.extract(text, origin, options)
            if candidate:
                return candidate
        return None

    async def apply_cart_intent(self, db: AsyncSession, user_id: str, message: str, reply: str,
                                options: List[OptionLine]) -> Optional[Dict[str, Any]]:
        intent = self.detector.detect(message, reply)
        if not intent.is_cart_intent:
            return None
        candidate = self.resolve_candidate(intent, message, reply, options)
        if candidate is None:
            logger.info("[CHAT] cart intent (%s: %r) but no product could be extracted",
                        intent.source_hint, intent.matched_phrase)
            return None
        logger.info("[CHAT] cart intent via %s, candidate=%r price_hint=%.2f",
                    intent.source_hint, candidate.name, candidate.price)
        try:
            result = await self.reconciler.add_best_match(db, user_id, candidate, message)
        except (NoMatchingProductError, StorefrontError) as e:
            logger.warning("[CHAT] auto add to cart failed for %r: %s", candidate.name, e)
            return failed_mutation(str(e)).to_dict()
        except SQLAlchemyError:
            logger.exception("[CHAT] cart transaction failed for user=%s", user_id)
            return failed_mutation("Cart update failed").to_dict()
        return result.to_dict()

    async def recommendations(self, message: str, reply: str) -> List[Product]:
        try:
            return await find_recommended_products(self.shopify, message, reply, 5, self.lexicon)
        except StorefrontError as e:
            logger.warning("[CHAT] recommendation lookup failed: %s", e)
            return []

    async def persist_turn(self, db: AsyncSession, session_id: str, message: str, reply: str,
                           payload: Optional[Dict[str, Any]], options: List[OptionLine]) -> None:
        try:
            session = await crud.get_chat_session(db, session_id, active_only=False)
            first_message = await crud.count_messages(db, session_id) == 0
            await crud.add_chat_message(db, session_id, "user", message)
            await crud.add_chat_message(db, session_id, "assistant", reply, payload)
            if session is not None:
                if first_message and session.title == "New Chat":
                    session.title = crud.session_title_from(message)
                if options:
                    session.last_options = [o.to_dict() for o in options]
                session.updated_at = utcnow()
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("[CHAT] could not save exchange to session %s", session_id)

    async def handle_turn(self, db: AsyncSession, user: User, message: str,
                          session_id: Optional[str] = None, is_new_chat: bool = False) -> Dict[str, Any]:
        message = (message or "").strip()
        if not message:
            raise ValidationError("Message is required")
        user_id = user.user_id

        session, is_new = await self.resolve_session(db, user_id, session_id, is_new_chat)
        session_id = session.session_id
        remembered = session.last_options or []

        prompt = message
        if self.detector.is_cart_query(message):
            prompt += await self.cart_context(db, user_id)

        ai_ok = True
        try:
            sensay_id = await self.ensure_sensay_user(db, user)
            reply = await self.sensay.chat(sensay_id, prompt)
        except AIServiceError as e:
            logger.error("[CHAT] AI call failed for user=%s: %s", user_id, e)
            ai_ok = False
            reply = AI_UNAVAILABLE_REPLY

        # the apology text must not feed the cart pipeline
        pipeline_reply = reply if ai_ok else ""
        shown_options = parse_option_lines(pipeline_reply)
        options = shown_options or coerce_options(remembered)

        cart_action = await self.apply_cart_intent(db, user_id, message, pipeline_reply, options)
        products = await self.recommendations(message, reply) if ai_ok else []

        payload: Dict[str, Any] = {}
        if products:
            payload["shopifyProducts"] = [p.to_dict() for p in products]
        if cart_action:
            payload["cartAction"] = cart_action
        await self.persist_turn(db, session_id, message, reply, payload or None, shown_options)

        response: Dict[str, Any] = {
            "content": reply,
            "role": "assistant",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "sessionId": session_id,
            "isNewSession": is_new,
        }
        response.update(payload)
        return response
