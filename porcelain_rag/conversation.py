"""The chat flow: retrieve, assemble context, generate, persist."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .models import ChatResult, Message
from .prompts import ESCALATION_MESSAGE, build_user_prompt, load_system_prompt
from .provenance import build_context_text, citation_footer, provenance_items

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .generation import ChatGenerator
    from .models import RetrievedDocument
    from .retrieval import Retriever
    from .store import SupabaseStore

logger = config.get_logger(__name__)


def _declines(answer: str) -> bool:
    text = answer.strip()
    return not text or text == ESCALATION_MESSAGE


def _escalation(docs: list[RetrievedDocument] | None = None) -> ChatResult:
    return ChatResult(
        answer=ESCALATION_MESSAGE,
        provenance=[],
        retrieved_docs=docs or [],
        escalated=True,
    )


class ConversationService:
    """Answers customer messages from the product knowledge base."""

    def __init__(
        self,
        retriever: Retriever,
        generator: ChatGenerator,
        store: SupabaseStore,
        system_prompt: str | None = None,
    ) -> None:
        """Initialize ConversationService.

        Args:
            retriever: Retrieval adapter used for every message.
            generator: Chat completion adapter.
            store: Persistence for conversations and messages.
            system_prompt: Instruction sent with every generation call. If None,
                loaded from config.SYSTEM_PROMPT_PATH.
        """
        self.retriever = retriever
        self.generator = generator
        self.store = store
        self.system_prompt = system_prompt or load_system_prompt()

    @staticmethod
    def _require_message(message: str) -> str:
        if not isinstance(message, str) or not message.strip():
            msg = "Message is required and must be a non-empty string"
            raise ValueError(msg)
        return message.strip()

    def _prompt_messages(
        self, message: str, docs: list[RetrievedDocument]
    ) -> list[dict[str, str]]:
        context_text = build_context_text(docs)
        logger.info("Context length: %d characters", len(context_text))
        return [{"role": "user", "content": build_user_prompt(context_text, message)}]

    def answer(self, message: str, session_id: str | None = None) -> ChatResult:
        """Answer one customer message.

        Returns:
            ChatResult: The answer with provenance. When nothing relevant is
                retrieved the answer is the escalation message and no
                generation call is made.
        """
        message = self._require_message(message)
        docs = self.retriever.retrieve_relevant(message)

        if not docs:
            result = _escalation()
        else:
            answer = self.generator.complete(
                self.system_prompt, self._prompt_messages(message, docs)
            )
            if _declines(answer):
                result = _escalation(docs)
            else:
                answer += citation_footer(answer, docs)
                result = ChatResult(
                    answer=answer,
                    provenance=provenance_items(docs),
                    retrieved_docs=docs,
                )
            logger.info("Generated response: %s...", result.answer[:100])

        if session_id:
            self.save_turn(session_id, message, result)
        return result

    def stream(self, message: str, session_id: str | None = None) -> Iterator[str]:
        """Answer one customer message chunk by chunk.

        Retrieval runs before the first chunk is yielded, so retrieval errors
        surface to the caller before any output is produced.

        Returns:
            Iterator over answer chunks. The turn is persisted when the
            iterator finishes or is closed early, with whatever text was
            streamed so far.
        """
        message = self._require_message(message)
        docs = self.retriever.retrieve_relevant(message)
        return self._stream_chunks(message, docs, session_id)

    def _stream_chunks(
        self,
        message: str,
        docs: list[RetrievedDocument],
        session_id: str | None,
    ) -> Iterator[str]:
        parts: list[str] = []
        result: ChatResult | None = None
        try:
            if not docs:
                result = _escalation()
                yield ESCALATION_MESSAGE
                return

            for chunk in self.generator.stream(
                self.system_prompt, self._prompt_messages(message, docs)
            ):
                parts.append(chunk)
                yield chunk

            answer = "".join(parts)
            if not answer.strip():
                result = _escalation(docs)
                yield ESCALATION_MESSAGE
            elif _declines(answer):
                # The model already streamed the escalation text.
                result = _escalation(docs)
            else:
                footer = citation_footer(answer, docs)
                result = ChatResult(
                    answer=answer + footer,
                    provenance=provenance_items(docs),
                    retrieved_docs=docs,
                )
                if footer:
                    yield footer
        finally:
            if session_id:
                self._save_streamed_turn(session_id, message, docs, parts, result)

    def _save_streamed_turn(
        self,
        session_id: str,
        message: str,
        docs: list[RetrievedDocument],
        parts: list[str],
        result: ChatResult | None,
    ) -> None:
        if result is None:
            partial = "".join(parts)
            if not partial.strip():
                logger.info("Stream for session %s ended before any text", session_id)
                return
            logger.info("Saving interrupted stream for session %s", session_id)
            result = ChatResult(
                answer=partial,
                provenance=provenance_items(docs),
                retrieved_docs=docs,
            )
        self.save_turn(session_id, message, result)

    def save_turn(self, session_id: str, message: str, result: ChatResult) -> None:
        """Persist the user message and the assistant answer of a session.

        Failures are logged and swallowed so the customer still gets the answer.
        """
        try:
            conversation = self.store.find_session_conversation(session_id)
            if conversation is None:
                conversation = self.store.create_conversation(
                    title=message[:80], session_id=session_id
                )
            self.store.add_message(conversation.id, "user", message)
            self.store.add_message(
                conversation.id,
                "assistant",
                result.answer,
                provenance=[item.to_dict() for item in result.provenance],
            )
        except Exception:
            logger.exception("Error saving conversation for session %s", session_id)

    def history(self, session_id: str, limit: int | None = None) -> list[Message]:
        """Messages of a widget session, oldest first.

        Returns:
            list[Message]: At most ``limit`` of the most recent messages, or an
                empty list for an unknown session.
        """
        conversation = self.store.find_session_conversation(session_id)
        if conversation is None:
            return []
        return self.store.list_messages(
            conversation.id, limit=limit or config.HISTORY_LIMIT
        )
