# Overview: System chat messages between the business and a reseller.

"""
The business side of every reseller DM is one explicit user, configured by
CHAT_AUTHORITY_EMAIL. Nothing is inferred from "the first admin row": with
no configured authority, system messages are skipped.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import ChatConversation, ChatConversationMember, ChatMessage, Reseller, User
from ..models.auth import ROLE_ADMIN

KIND_SYSTEM = "system"


def get_chat_authority() -> User | None:
    email = current_app.config.get("CHAT_AUTHORITY_EMAIL")
    if not email:
        return None
    return (
        db.session.query(User)
        .filter_by(email=email.strip().lower(), role=ROLE_ADMIN, is_active=True)
        .first()
    )


def find_direct_conversation(user_a_id: int, user_b_id: int) -> ChatConversation | None:
    wanted = {user_a_id, user_b_id}
    candidates = (
        db.session.query(ChatConversation)
        .join(ChatConversationMember, ChatConversationMember.conversation_id == ChatConversation.id)
        .filter(ChatConversation.type == "dm", ChatConversationMember.user_id == user_a_id)
        .order_by(ChatConversation.id)
        .all()
    )
    for conversation in candidates:
        if conversation.member_user_ids() == wanted:
            return conversation
    return None


def post_system_message(conversation_id: int, body: str) -> ChatMessage:
    message = ChatMessage(conversation_id=conversation_id, kind=KIND_SYSTEM, body=body)
    db.session.add(message)
    db.session.flush()
    return message


def create_system_message_for_reseller(reseller_id: int, body: str) -> ChatMessage | None:
    """
    Post a system message in the DM between the chat authority and the
    reseller. Missing reseller, authority or conversation is a silent no-op.
    """
    reseller = db.session.get(Reseller, reseller_id)
    if not reseller:
        return None

    authority = get_chat_authority()
    if not authority:
        current_app.logger.debug("No chat authority configured; skipping message for reseller %s", reseller_id)
        return None

    conversation = find_direct_conversation(authority.id, reseller.user_id)
    if not conversation:
        return None

    return post_system_message(conversation.id, body)


def open_direct_conversation(reseller_id: int) -> ChatConversation:
    """Return the authority/reseller DM, creating it the first time."""
    reseller = db.session.get(Reseller, reseller_id)
    if not reseller:
        raise NotFoundError("Revendedor no encontrado")

    authority = get_chat_authority()
    if not authority:
        raise InvalidStateError("No hay un administrador configurado para el chat")

    conversation = find_direct_conversation(authority.id, reseller.user_id)
    if conversation:
        return conversation

    conversation = ChatConversation(type="dm")
    db.session.add(conversation)
    db.session.flush()
    db.session.add_all([
        ChatConversationMember(conversation_id=conversation.id, user_id=authority.id),
        ChatConversationMember(conversation_id=conversation.id, user_id=reseller.user_id),
    ])
    db.session.commit()
    return conversation
