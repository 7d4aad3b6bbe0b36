"""
Tests for the conversational task editor and the language model client
"""

import json
from unittest.mock import Mock

import httpx
import pytest

from focus_todo.config import LLMSettings
from focus_todo.domain import ChatMessage
from focus_todo.errors import AccessDeniedError, AiProcessingError, NotFoundError, ValidationError
from focus_todo.llm import LLMClient
from focus_todo.models import SyncTask
from focus_todo.services.ai import AiService, strip_code_fences


USER = "alice"

DIFF = {
    "projectTitle": "Trip",
    "tasks": [
        {"id": None, "title": "Book tickets", "scheduledStartAt": "2024-05-01T09:00:00", "isAllDay": True},
        {"id": 3, "isDeleted": True},
    ],
    "advice": "Added one task and removed another.",
}


def fenced(payload):
    return "```json\n" + json.dumps(payload) + "\n```"


@pytest.fixture
def llm():
    return Mock(spec=LLMClient)


@pytest.fixture
def service(db, llm):
    return AiService(db, llm)


class TestStripCodeFences:
    """Test removal of markdown code blocks around model output"""

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'
        assert strip_code_fences(None) == ""


class TestAiService:
    """Test chat turns, persistence and ownership"""

    def test_first_turn_creates_conversation(self, service, llm, db):
        llm.generate.side_effect = [fenced(DIFF), '"Planning a trip"']

        result = service.chat(USER, "Plan my trip", current_tasks=[SyncTask(id=3, title="Old")])

        assert result.result.project_title == "Trip"
        assert result.result.tasks[0].id is None
        assert result.result.tasks[1].is_deleted
        assert result.suggested_title == "Planning a trip"

        conversation = db.get_conversation(result.conversation_id)
        assert conversation.user_id == USER
        assert conversation.title == "Planning a trip"

        messages = db.list_chat_messages(result.conversation_id)
        assert [m.role for m in messages] == ["user", "assistant"]
        assert messages[0].content == "Plan my trip"
        assert messages[1].content == json.dumps(DIFF)

    def test_system_prompt_carries_context(self, service, llm, db):
        db.create_category(USER, "Travel", "#00aaff")
        llm.generate.side_effect = [json.dumps(DIFF), "Title"]

        service.chat(USER, "Plan", current_tasks=[SyncTask(id=3, title="Pack bags")], project_title="Trip")

        system_prompt, history, user_message = llm.generate.call_args_list[0].args
        assert "- Travel" in system_prompt
        assert "Pack bags" in system_prompt
        assert "Project: Trip" in system_prompt
        assert history == []
        assert user_message == "Plan"

    def test_follow_up_sends_history(self, service, llm, db):
        llm.generate.side_effect = [json.dumps(DIFF), "Trip", json.dumps({"tasks": []})]
        first = service.chat(USER, "Plan my trip")

        second = service.chat(USER, "Also pack", conversation_id=first.conversation_id)

        history = llm.generate.call_args_list[2].args[1]
        assert [m.role for m in history] == ["user", "assistant"]
        assert second.suggested_title is None
        assert llm.generate.call_count == 3
        assert len(db.list_chat_messages(first.conversation_id)) == 4

    def test_unparseable_answer_stores_nothing(self, service, llm, db):
        llm.generate.return_value = "Sure! Here is your plan."

        with pytest.raises(AiProcessingError):
            service.chat(USER, "Plan", conversation_id="conv-1")

        assert db.get_conversation("conv-1") is None
        assert db.list_chat_messages("conv-1") == []

    def test_model_failure_propagates(self, service, llm):
        llm.generate.side_effect = AiProcessingError("Language model request timed out")
        with pytest.raises(AiProcessingError):
            service.chat(USER, "Plan")

    def test_title_falls_back(self, service, llm, db):
        llm.generate.side_effect = [json.dumps(DIFF), AiProcessingError("boom")]

        result = service.chat(USER, "Plan")

        assert result.suggested_title == "New Chat"
        assert db.get_conversation(result.conversation_id).title == "New Chat"

    def test_empty_prompt(self, service, llm):
        with pytest.raises(ValidationError):
            service.chat(USER, "   ")
        llm.generate.assert_not_called()

    def test_foreign_conversation(self, service, llm):
        llm.generate.side_effect = [json.dumps(DIFF), "Title"]
        theirs = service.chat("bob", "Plan")

        with pytest.raises(AccessDeniedError):
            service.chat(USER, "Hijack", conversation_id=theirs.conversation_id)
        with pytest.raises(AccessDeniedError):
            service.list_messages(USER, theirs.conversation_id)
        with pytest.raises(AccessDeniedError):
            service.delete_conversation(USER, theirs.conversation_id)

    def test_unknown_conversation(self, service):
        assert service.list_messages(USER, "missing") == []
        with pytest.raises(NotFoundError):
            service.delete_conversation(USER, "missing")

    def test_list_and_delete(self, service, llm, db):
        llm.generate.side_effect = [json.dumps(DIFF), "Title"]
        result = service.chat(USER, "Plan")

        assert [c.id for c in service.list_conversations(USER)] == [result.conversation_id]
        service.delete_conversation(USER, result.conversation_id)
        assert service.list_conversations(USER) == []
        assert db.list_chat_messages(result.conversation_id) == []


def make_client(handler):
    settings = LLMSettings(base_url="https://llm.test/v1", api_key="test-key", model="test-model")
    transport = httpx.MockTransport(handler)
    return LLMClient(settings, client=httpx.Client(transport=transport, base_url="https://llm.test/v1/"))


class TestLLMClient:
    """Test the chat completion client against a mock transport"""

    def test_generate(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})

        with make_client(handler) as client:
            history = [ChatMessage("c", "user", "hi"), ChatMessage("c", "assistant", "hey")]
            assert client.generate("system", history, "next") == "hello"

        assert seen["url"] == "https://llm.test/v1/chat/completions"
        assert seen["body"]["model"] == "test-model"
        assert [m["role"] for m in seen["body"]["messages"]] == ["system", "user", "assistant", "user"]

    def test_default_client_sends_api_key(self):
        client = LLMClient(LLMSettings(api_key="secret"))
        try:
            assert client.client.headers["Authorization"] == "Bearer secret"
        finally:
            client.close()

    def test_build_messages_without_system_prompt(self):
        assert LLMClient.build_messages(None, [], "hi") == [{"role": "user", "content": "hi"}]

    @pytest.mark.parametrize("status", [401, 403, 429, 500])
    def test_error_statuses(self, status):
        client = make_client(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(AiProcessingError):
            client.generate(None, [], "hi")

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(AiProcessingError, match="timed out"):
            make_client(handler).generate(None, [], "hi")

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(AiProcessingError):
            make_client(handler).generate(None, [], "hi")

    def test_malformed_payload(self):
        client = make_client(lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(AiProcessingError):
            client.generate(None, [], "hi")
