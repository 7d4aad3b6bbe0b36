"""Conversational task editing.

The user describes a change in plain language; the language model answers
with a diff against the tasks the client currently shows. The diff is only
a preview: applying it is a separate call to ``TaskService.sync_tasks``.
"""

import json
import logging
import re
import uuid
from dataclasses import dataclass
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..domain import ChatMessage, Conversation
from ..errors import AccessDeniedError, AiProcessingError, NotFoundError, ValidationError
from ..llm import LLMClient
from ..models import SyncTask, SyncTaskList
from ..storage.database import DatabaseManager
from ..utils.datetime import today_utc


logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_TITLE = "New Chat"
MAX_TITLE_LENGTH = 80

SYSTEM_PROMPT = """You are the planning assistant of a task manager.
Read the user's request and return ONLY the changes it implies to the
current task list below.

Rules:
1. Update: keep the task's "id" exactly as given and send the new values.
2. Create: send a new task with "id": null.
3. Delete: send the task's "id" with "isDeleted": true.
4. Unchanged tasks must not appear in the output.
5. Never modify a field the user did not ask to change.

When the user gives no date, schedule the task for today at 09:00 with
"isAllDay": true. When a time of day is given, set "isAllDay": false.
Dates use "YYYY-MM-DDTHH:mm:ss".

If several items clearly belong under one heading ("Trip: pack, book
tickets"), create one task with subtasks [{{"title": "..."}}]. Independent
items become separate tasks.

Task fields: id, title, description, scheduledStartAt, scheduledEndAt,
isAllDay, estimatedPomodoros, categoryName, taskListTitle, isRecurring,
recurrenceRule, subtasks, isDeleted, status ("PENDING", "IN_PROGRESS",
"COMPLETED").
recurrenceRule is an object: {{"frequency": "DAILY|WEEKLY|MONTHLY|YEARLY",
"interval": 1, "byDay": ["MONDAY"], "count": 5, "until": "YYYY-MM-DD"}}.
Any bounded repetition also sets "isRecurring": true.

Categories the user has defined (pick one for categoryName when it fits,
otherwise leave it out; never invent a new one):
{categories}

Answer with a single JSON object and nothing else:
{{"projectTitle": string or null, "tasks": [...], "advice": "short summary of what you changed"}}

Today is {today}.

Current tasks (only these may be updated or deleted):
{tasks}
"""

TITLE_PROMPT = """Write a short title (3 to 8 words) for a conversation that
starts with the message below. Output the title only, without quotes,
emoji or explanation.

Message:
{message}
"""

CODE_FENCE = re.compile(r'^```[a-zA-Z]*\s*|\s*```$')


def strip_code_fences(text: Optional[str]) -> str:
    """Remove a surrounding markdown code block, if any."""
    if text is None:
        return ""
    return CODE_FENCE.sub("", text.strip()).strip()


@dataclass
class ChatResult:
    conversation_id: str
    result: SyncTaskList
    suggested_title: Optional[str] = None


class AiService:
    """Runs chat turns against the language model and stores the history."""

    def __init__(self, db: DatabaseManager, llm: LLMClient):
        self.db = db
        self.llm = llm

    def _owned_conversation(self, user_id: str, conversation_id: Optional[str]) -> Optional[Conversation]:
        if not conversation_id:
            return None
        conversation = self.db.get_conversation(conversation_id)
        if conversation is not None and conversation.user_id != user_id:
            logger.warning(f"User {user_id} tried to access conversation {conversation_id}")
            raise AccessDeniedError("You do not have access to this conversation")
        return conversation

    def _categories_context(self, user_id: str) -> str:
        categories = self.db.list_categories(user_id)
        if not categories:
            return "(none)"
        return "\n".join(f"- {c.name}" for c in categories)

    @staticmethod
    def _tasks_context(tasks: List[SyncTask], project_title: Optional[str]) -> str:
        rendered = json.dumps(
            [t.model_dump(mode="json", by_alias=True, exclude_none=True) for t in tasks],
            indent=2,
            ensure_ascii=False,
        )
        if project_title:
            return f"Project: {project_title}\n{rendered}"
        return rendered

    def build_system_prompt(self, user_id: str, tasks: List[SyncTask], project_title: Optional[str]) -> str:
        return SYSTEM_PROMPT.format(
            categories=self._categories_context(user_id),
            today=today_utc().isoformat(),
            tasks=self._tasks_context(tasks, project_title),
        )

    @staticmethod
    def parse_response(text: str) -> SyncTaskList:
        """Parse the model's answer into a task diff.

        Raises:
            AiProcessingError: The answer is not a JSON object of the expected shape
        """
        cleaned = strip_code_fences(text)
        if not cleaned:
            raise AiProcessingError("Language model returned an empty answer")
        try:
            return SyncTaskList.model_validate_json(cleaned)
        except PydanticValidationError as e:
            raise AiProcessingError(f"Could not parse the language model answer: {e.error_count()} error(s)")

    def generate_title(self, first_message: str) -> str:
        """Short conversation title, "New Chat" when the model cannot provide one."""
        try:
            title = self.llm.generate(None, [], TITLE_PROMPT.format(message=first_message))
        except AiProcessingError as e:
            logger.warning(f"Failed to generate conversation title: {e.message}")
            return DEFAULT_CONVERSATION_TITLE
        title = re.sub(r'["\']', "", title or "").strip()
        return title[:MAX_TITLE_LENGTH] or DEFAULT_CONVERSATION_TITLE

    def chat(
        self,
        user_id: str,
        prompt: str,
        current_tasks: Optional[List[SyncTask]] = None,
        project_title: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> ChatResult:
        """Run one turn of a task-editing conversation.

        Nothing is stored unless the model's answer parses.

        Raises:
            ValidationError: Empty prompt
            AccessDeniedError: The conversation belongs to another user
            AiProcessingError: The model call or its answer failed
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        conversation = self._owned_conversation(user_id, conversation_id)
        conversation_id = conversation_id or str(uuid.uuid4())
        history = self.db.list_chat_messages(conversation_id) if conversation else []
        first_message = not history

        system_prompt = self.build_system_prompt(user_id, current_tasks or [], project_title)
        answer = self.llm.generate(system_prompt, history, prompt)
        result = self.parse_response(answer)
        logger.info(
            f"AI chat for user {user_id} in {conversation_id} proposed {len(result.tasks)} change(s)"
        )

        title = self.generate_title(prompt) if first_message else None

        if conversation is None:
            self.db.create_conversation(Conversation(conversation_id, user_id, title or DEFAULT_CONVERSATION_TITLE))
        elif title:
            self.db.set_conversation_title(conversation_id, title)
        self.db.add_chat_messages([
            ChatMessage(conversation_id, "user", prompt),
            ChatMessage(conversation_id, "assistant", strip_code_fences(answer)),
        ])

        return ChatResult(conversation_id=conversation_id, result=result, suggested_title=title)

    def list_messages(self, user_id: str, conversation_id: str) -> List[ChatMessage]:
        """Messages oldest first; an unknown conversation has none."""
        conversation = self._owned_conversation(user_id, conversation_id)
        if conversation is None:
            return []
        return self.db.list_chat_messages(conversation_id)

    def list_conversations(self, user_id: str) -> List[Conversation]:
        return self.db.list_conversations(user_id)

    def delete_conversation(self, user_id: str, conversation_id: str) -> None:
        conversation = self._owned_conversation(user_id, conversation_id)
        if conversation is None:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        self.db.delete_conversation(conversation_id)
        logger.info(f"Deleted conversation {conversation_id} for user {user_id}")
