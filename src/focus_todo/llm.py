"""Language model client.

Talks to any OpenAI-compatible ``/chat/completions`` endpoint and returns
the assistant's text. HTTP and payload failures surface as
``AiProcessingError``; there is no retry.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .config import LLMSettings, get_config
from .domain import ChatMessage
from .errors import AiProcessingError


logger = logging.getLogger(__name__)


class LLMClient:
    """Chat completion client with a synchronous httpx transport."""

    def __init__(self, settings: Optional[LLMSettings] = None, client: Optional[httpx.Client] = None):
        """Initialize the client.

        Args:
            settings: Endpoint settings (uses the global config if None)
            client: Preconfigured httpx client, mainly for tests
        """
        self.settings = settings or get_config().llm
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        self.client = client or httpx.Client(
            base_url=self.settings.base_url.rstrip("/") + "/",
            headers=headers,
            timeout=self.settings.timeout,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def build_messages(
        system_prompt: Optional[str],
        history: Sequence[ChatMessage],
        user_message: str,
    ) -> List[Dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for message in history:
            messages.append({"role": message.role, "content": message.content})
        messages.append({"role": "user", "content": user_message})
        return messages

    def generate(
        self,
        system_prompt: Optional[str],
        history: Sequence[ChatMessage],
        user_message: str,
    ) -> str:
        """Send one chat turn and return the assistant's reply.

        Args:
            system_prompt: Instructions placed before the history
            history: Earlier turns of the conversation, oldest first
            user_message: The new user turn

        Returns:
            Assistant message content

        Raises:
            AiProcessingError: On transport errors, error statuses or an unusable payload
        """
        payload = {
            "model": self.settings.model,
            "temperature": self.settings.temperature,
            "messages": self.build_messages(system_prompt, history, user_message),
        }

        try:
            response = self.client.post("chat/completions", json=payload)
        except httpx.TimeoutException:
            raise AiProcessingError("Language model request timed out")
        except httpx.RequestError as e:
            raise AiProcessingError(f"Language model request failed: {e}")

        if response.status_code in (401, 403):
            raise AiProcessingError("Language model rejected the API key")
        elif response.status_code == 429:
            raise AiProcessingError("Language model rate limit exceeded")
        elif response.status_code >= 400:
            raise AiProcessingError(f"Language model error {response.status_code}: {response.text}")

        return self._extract_content(response)

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        try:
            data: Dict[str, Any] = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AiProcessingError(f"Unexpected language model response: {e}")
        if not isinstance(content, str):
            raise AiProcessingError("Language model returned no text")
        logger.debug(f"Language model replied with {len(content)} characters")
        return content
