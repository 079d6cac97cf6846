"""Local conversation persistence backed by a diskcache directory.

Layout: one entry per owner holding that owner's conversation list, and one
entry per conversation holding its messages. Entries never expire.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import diskcache as dc

from zestislam.domain.interfaces.conversation_store import ConversationStore
from zestislam.domain.models.common import ConversationID, OwnerID
from zestislam.domain.models.content import Conversation, Message

logger = logging.getLogger(__name__)

LAST_MESSAGE_PREVIEW_CHARS = 50


def _conversations_key(owner: OwnerID) -> str:
    return f"conversations:{owner}"


def _messages_key(conversation_id: ConversationID) -> str:
    return f"messages:{conversation_id}"


class DiskConversationStore(ConversationStore):
    """ConversationStore persisted with diskcache."""

    def __init__(self, storage_dir: Path):
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._cache = dc.Cache(str(self.storage_dir), timeout=1)
        logger.info(f"Conversation store opened at: {self.storage_dir}")

    def _load(self, owner: OwnerID) -> List[Conversation]:
        return list(self._cache.get(_conversations_key(owner), default=[]))

    def _store(self, owner: OwnerID, conversations: List[Conversation]) -> None:
        self._cache.set(_conversations_key(owner), conversations)

    async def list_conversations(self, owner: OwnerID) -> List[Conversation]:
        conversations = self._load(owner)
        return sorted(conversations, key=lambda c: c.timestamp, reverse=True)

    async def create_conversation(
        self,
        owner: OwnerID,
        title: str,
        conversation_id: Optional[ConversationID] = None,
    ) -> Conversation:
        conversation = Conversation(
            id=conversation_id or ConversationID(uuid.uuid4().hex),
            title=title,
        )
        with self._cache.transact():
            conversations = [c for c in self._load(owner) if c.id != conversation.id]
            conversations.append(conversation)
            self._store(owner, conversations)
        logger.debug(f"Created conversation {conversation.id} for {owner}")
        return conversation

    async def update_title(self, owner: OwnerID, conversation_id: ConversationID, title: str) -> None:
        with self._cache.transact():
            conversations = [
                replace(c, title=title) if c.id == conversation_id else c
                for c in self._load(owner)
            ]
            self._store(owner, conversations)

    async def delete_conversation(self, owner: OwnerID, conversation_id: ConversationID) -> None:
        with self._cache.transact():
            conversations = [c for c in self._load(owner) if c.id != conversation_id]
            self._store(owner, conversations)
            self._cache.delete(_messages_key(conversation_id))
        logger.debug(f"Deleted conversation {conversation_id} for {owner}")

    async def get_messages(self, conversation_id: ConversationID) -> List[Message]:
        messages = list(self._cache.get(_messages_key(conversation_id), default=[]))
        return sorted(messages, key=lambda m: m.timestamp)

    async def save_message(self, owner: OwnerID, conversation_id: ConversationID, message: Message) -> None:
        stored = replace(message, conversation_id=conversation_id)
        with self._cache.transact():
            messages = list(self._cache.get(_messages_key(conversation_id), default=[]))
            messages.append(stored)
            self._cache.set(_messages_key(conversation_id), messages)

            now = datetime.now(timezone.utc)
            preview = message.content[:LAST_MESSAGE_PREVIEW_CHARS]
            conversations = [
                replace(c, last_message=preview, timestamp=now) if c.id == conversation_id else c
                for c in self._load(owner)
            ]
            self._store(owner, conversations)

    def close(self) -> None:
        self._cache.close()
