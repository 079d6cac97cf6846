"""Interface for conversation persistence.

The access contract the chat feature relies on. Only a local, disk-backed
implementation ships with the package.
"""

import abc
from typing import List, Optional

from ..models.common import ConversationID, OwnerID
from ..models.content import Conversation, Message


class ConversationStore(abc.ABC):
    """Abstract Base Class for storing chat conversations and messages."""

    @abc.abstractmethod
    async def list_conversations(self, owner: OwnerID) -> List[Conversation]:
        """Returns the owner's conversations, most recent first."""
        pass

    @abc.abstractmethod
    async def create_conversation(
        self,
        owner: OwnerID,
        title: str,
        conversation_id: Optional[ConversationID] = None,
    ) -> Conversation:
        """Creates a conversation, generating an id when none is given."""
        pass

    @abc.abstractmethod
    async def update_title(self, owner: OwnerID, conversation_id: ConversationID, title: str) -> None:
        pass

    @abc.abstractmethod
    async def delete_conversation(self, owner: OwnerID, conversation_id: ConversationID) -> None:
        """Deletes a conversation and all of its messages."""
        pass

    @abc.abstractmethod
    async def get_messages(self, conversation_id: ConversationID) -> List[Message]:
        """Returns the messages of a conversation, oldest first."""
        pass

    @abc.abstractmethod
    async def save_message(self, owner: OwnerID, conversation_id: ConversationID, message: Message) -> None:
        """Appends a message and refreshes the conversation's last message and timestamp."""
        pass
