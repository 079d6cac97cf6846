import asyncio
from unittest.mock import MagicMock

import pytest

from zestislam.core.services.chat_service import ChatService
from zestislam.core.services.scholar_service import DEFAULT_CHAT_TITLE, ScholarService
from zestislam.domain.models.common import ConversationID
from zestislam.domain.models.errors import CredentialPoolEmpty
from zestislam.infrastructure.cli.display import ConsoleDisplay
from zestislam.infrastructure.storage.conversation_store import DiskConversationStore


@pytest.fixture
def mock_scholar():
    mock = MagicMock(spec=ScholarService)
    mock.get_chat_response.return_value = "Wa alaikum assalam."
    mock.generate_chat_title.return_value = "Greeting The Scholar Warmly"
    return mock


@pytest.fixture
def mock_ui():
    mock = MagicMock(spec=ConsoleDisplay)
    # Simulate user input sequence: first prompt, then 'exit'
    mock.get_prompt.side_effect = ["Assalamu alaikum", "exit"]
    return mock


@pytest.fixture
def store(tmp_path):
    conversation_store = DiskConversationStore(tmp_path / "conversations")
    yield conversation_store
    conversation_store.close()


@pytest.fixture
def chat_service(mock_scholar, mock_ui, store):
    """Fixture to create ChatService with a mocked Scholar and a real local store."""
    return ChatService(scholar_service=mock_scholar, ui=mock_ui, conversation_store=store)


def test_first_message_titles_conversation(chat_service: ChatService, mock_scholar: MagicMock, store):
    reply = asyncio.run(chat_service.send("Assalamu alaikum"))

    assert reply == "Wa alaikum assalam."
    mock_scholar.get_chat_response.assert_awaited_once_with([], "Assalamu alaikum")
    mock_scholar.generate_chat_title.assert_awaited_once_with("Assalamu alaikum")
    assert chat_service.conversation.title == "Greeting The Scholar Warmly"

    stored = asyncio.run(store.list_conversations(chat_service.owner))
    assert [c.title for c in stored] == ["Greeting The Scholar Warmly"]
    messages = asyncio.run(store.get_messages(chat_service.conversation.id))
    assert [(m.role, m.content) for m in messages] == [
        ("user", "Assalamu alaikum"), ("model", "Wa alaikum assalam."),
    ]


def test_later_messages_carry_history_without_retitling(chat_service: ChatService, mock_scholar: MagicMock):
    asyncio.run(chat_service.send("Assalamu alaikum"))
    mock_scholar.get_chat_response.return_value = "Sabr is patience."

    asyncio.run(chat_service.send("What is sabr?"))

    history = mock_scholar.get_chat_response.call_args.args[0]
    assert history == [
        {'role': 'user', 'content': 'Assalamu alaikum'},
        {'role': 'model', 'content': 'Wa alaikum assalam.'},
    ]
    assert mock_scholar.generate_chat_title.await_count == 1


def test_default_title_is_not_written_back(chat_service: ChatService, mock_scholar: MagicMock, store):
    mock_scholar.generate_chat_title.return_value = DEFAULT_CHAT_TITLE

    asyncio.run(chat_service.send("hello"))

    assert asyncio.run(store.list_conversations(chat_service.owner))[0].title == DEFAULT_CHAT_TITLE


def test_failed_reply_leaves_no_stored_user_turn(chat_service: ChatService, mock_scholar: MagicMock, store):
    mock_scholar.get_chat_response.side_effect = CredentialPoolEmpty(["API_KEY"])

    with pytest.raises(CredentialPoolEmpty):
        asyncio.run(chat_service.send("Assalamu alaikum"))

    assert chat_service.messages == []
    assert asyncio.run(store.get_messages(chat_service.conversation.id)) == []


def test_resume_conversation(chat_service: ChatService, store):
    asyncio.run(chat_service.send("Assalamu alaikum"))
    conversation_id = chat_service.conversation.id

    resumed = ChatService(scholar_service=chat_service.scholar_service, ui=chat_service.ui, conversation_store=store)
    conversation = asyncio.run(resumed.start_conversation(conversation_id))

    assert conversation.id == conversation_id
    assert len(resumed.history_for_api()) == 2


def test_resume_unknown_conversation_raises(chat_service: ChatService):
    with pytest.raises(ValueError, match="No conversation"):
        asyncio.run(chat_service.start_conversation(ConversationID("missing")))


def test_start_chat_loop(chat_service: ChatService, mock_scholar: MagicMock, mock_ui: MagicMock):
    """Test the main chat loop interaction."""
    asyncio.run(chat_service.start_chat_loop("gemini"))

    mock_ui.display_session_header.assert_called_once_with("gemini", DEFAULT_CHAT_TITLE)
    assert mock_ui.get_prompt.call_count == 2
    mock_ui.get_prompt.assert_any_call("You:")
    mock_ui.display_output.assert_called_once_with("Wa alaikum assalam.", title="Scholar")
    mock_ui.display_info.assert_any_call("Ending chat session.")
    assert mock_ui.display_session_footer.call_args.args[0] == 2


def test_chat_loop_history_and_blank_input(chat_service: ChatService, mock_scholar: MagicMock, mock_ui: MagicMock):
    mock_ui.get_prompt.side_effect = ["   ", "/history", "quit"]

    asyncio.run(chat_service.start_chat_loop())

    mock_ui.display_chat_history.assert_called_once_with([])
    mock_scholar.get_chat_response.assert_not_called()
    mock_ui.display_output.assert_not_called()


def test_chat_loop_stops_when_no_credentials(chat_service: ChatService, mock_scholar: MagicMock, mock_ui: MagicMock):
    mock_ui.get_prompt.side_effect = ["Assalamu alaikum", "exit"]
    mock_scholar.get_chat_response.side_effect = CredentialPoolEmpty(["API_KEY"])

    asyncio.run(chat_service.start_chat_loop())

    assert mock_ui.get_prompt.call_count == 1
    error_message = mock_ui.display_error.call_args.args[0]
    assert "No API credential configured" in error_message
    assert "API_KEY" in error_message
    mock_ui.display_session_footer.assert_called_once()
