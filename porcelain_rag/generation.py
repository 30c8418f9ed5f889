"""Response generation through the OpenAI chat completions API."""

from collections.abc import Iterator

from openai import OpenAI

from .config import config

logger = config.get_logger(__name__)

ChatMessages = list[dict[str, str]]


class ChatGenerator:
    """Sends a system instruction plus user turns to the chat model."""

    def __init__(
        self,
        openai_api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ) -> None:
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=openai_api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
        )
        self.model = model or config.CHAT_MODEL
        self.max_tokens = (
            max_tokens if max_tokens is not None else config.CHAT_MAX_TOKENS
        )
        self.temperature = (
            temperature if temperature is not None else config.CHAT_TEMPERATURE
        )

    def _messages(self, system_prompt: str, messages: ChatMessages) -> ChatMessages:
        return [{"role": "system", "content": system_prompt}, *messages]

    def complete(self, system_prompt: str, messages: ChatMessages) -> str:
        """Generate a full answer.

        Returns:
            The stripped answer text, or an empty string if the model
            returned no content.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(system_prompt, messages),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except Exception:
            logger.exception("Chat completion failed")
            raise
        content = response.choices[0].message.content
        return content.strip() if content else ""

    def stream(self, system_prompt: str, messages: ChatMessages) -> Iterator[str]:
        """Generate an answer chunk by chunk.

        Yields:
            Non-empty content deltas in the order the model produces them.
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(system_prompt, messages),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            for event in response:
                if not event.choices:
                    continue
                delta = event.choices[0].delta.content
                if delta:
                    yield delta
        except Exception:
            logger.exception("Streaming chat completion failed")
            raise
