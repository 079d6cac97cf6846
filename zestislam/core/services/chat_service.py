"""Core service for interactive Scholar chat sessions.

Keeps the conversation history, names new conversations from their first
message, persists both sides of every exchange to the ConversationStore and
runs the prompt loop against the UserInterface.
"""

import asyncio
import logging
import time
import uuid
from typing import List, Optional

from zestislam.core.services.scholar_service import DEFAULT_CHAT_TITLE, ScholarService
from zestislam.domain.interfaces.conversation_store import ConversationStore
from zestislam.domain.interfaces.user_interface import UserInterface
from zestislam.domain.models.ai import ChatMessage
from zestislam.domain.models.common import ConversationID, MessageRole, OwnerID, ProcessedOutput
from zestislam.domain.models.content import Conversation, Message
from zestislam.domain.models.errors import CredentialPoolEmpty

logger = logging.getLogger(__name__)

USER_ROLE = MessageRole("user")
SCHOLAR_ROLE = MessageRole("model")
LOCAL_OWNER = OwnerID("local")

EXIT_COMMANDS = ("exit", "quit")
HISTORY_COMMANDS = ("/history", "/h")


class ChatService:
    """Orchestrates a chat conversation with the Scholar."""

    def __init__(
        self,
        scholar_service: ScholarService,
        ui: UserInterface,
        conversation_store: ConversationStore,
        owner: OwnerID = LOCAL_OWNER,
    ):
        self.scholar_service = scholar_service
        self.ui = ui
        self.conversation_store = conversation_store
        self.owner = owner
        self.conversation: Optional[Conversation] = None
        self.messages: List[Message] = []

    async def start_conversation(self, conversation_id: Optional[ConversationID] = None) -> Conversation:
        """Resumes a stored conversation, or creates a new untitled one.

        Raises:
            ValueError: If conversation_id does not name one of the owner's conversations.
        """
        if conversation_id is not None:
            conversations = await self.conversation_store.list_conversations(self.owner)
            match = next((c for c in conversations if c.id == conversation_id), None)
            if match is None:
                raise ValueError(f"No conversation with id '{conversation_id}'.")
            self.conversation = match
            self.messages = await self.conversation_store.get_messages(conversation_id)
            logger.info(f"Resumed conversation {conversation_id} with {len(self.messages)} message(s)")
        else:
            self.conversation = await self.conversation_store.create_conversation(self.owner, DEFAULT_CHAT_TITLE)
            self.messages = []
            logger.info(f"Started conversation {self.conversation.id}")
        return self.conversation

    def history_for_api(self) -> List[ChatMessage]:
        return [ChatMessage(role=m.role, content=m.content) for m in self.messages]

    def _new_message(self, role: MessageRole, content: str) -> Message:
        return Message(id=uuid.uuid4().hex, role=role, content=content, conversation_id=self.conversation.id)

    async def _record(self, message: Message) -> Message:
        self.messages.append(message)
        await self.conversation_store.save_message(self.owner, self.conversation.id, message)
        return message

    async def send(self, text: str) -> str:
        """Sends one user message and returns (and records) the Scholar's reply."""
        if self.conversation is None:
            await self.start_conversation()

        is_first_message = not self.messages
        history = self.history_for_api()
        # Stored only once a reply exists
        user_message = self._new_message(USER_ROLE, text)

        reply = await self.scholar_service.get_chat_response(history, text)
        await self._record(user_message)
        await self._record(self._new_message(SCHOLAR_ROLE, reply))

        if is_first_message and self.conversation.title == DEFAULT_CHAT_TITLE:
            title = await self.scholar_service.generate_chat_title(text)
            if title != DEFAULT_CHAT_TITLE:
                await self.conversation_store.update_title(self.owner, self.conversation.id, title)
                self.conversation.title = title
                logger.debug(f"Conversation {self.conversation.id} titled '{title}'")
        return reply

    async def start_chat_loop(self, provider_name: str = "gemini") -> None:
        """Runs the prompt loop until the user exits."""
        if self.conversation is None:
            await self.start_conversation()

        self.ui.display_session_header(provider_name, self.conversation.title)
        started_at = time.time()
        exchanged = 0

        while True:
            user_input = (await asyncio.to_thread(self.ui.get_prompt, "You:")).strip()
            if not user_input:
                continue
            if user_input.lower() in EXIT_COMMANDS:
                self.ui.display_info("Ending chat session.")
                break
            if user_input.lower() in HISTORY_COMMANDS:
                self.ui.display_chat_history(self.messages)
                continue

            self.ui.display_thinking()
            try:
                reply = await self.send(user_input)
            except CredentialPoolEmpty as e:
                self.ui.display_error(f"{e}. Set API_KEY (comma-separated for several keys) and try again.")
                break
            exchanged += 2
            self.ui.display_output(ProcessedOutput(reply), title="Scholar")

        self.ui.display_session_footer(exchanged, time.time() - started_at)
