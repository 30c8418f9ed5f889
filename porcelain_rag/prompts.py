"""Prompt text for the porcelain assistant."""

from pathlib import Path

from .config import config

logger = config.get_logger(__name__)

ESCALATION_MESSAGE = (
    "I don't have that information — would you like me to escalate to an admin?"
)

DEFAULT_SYSTEM_PROMPT = (
    "You are RAK Porcelain Assistant. Only use information contained in the "
    "context field passed to you. Do not use any external knowledge. "
    "Always include provenance for every fact you state, copying the tag of the "
    "context entry it comes from exactly as written, for example "
    "[Product: 12, Source: description, ID: description_0]. "
    f'If the context does not provide an answer, respond: "{ESCALATION_MESSAGE}" '
    "Keep answers concise and helpful."
)


def load_system_prompt(path: Path | None = None) -> str:
    """Read the system instruction from disk, falling back to the built-in one.

    Returns:
        The system prompt text.
    """
    prompt_path = path if path is not None else config.SYSTEM_PROMPT_PATH
    try:
        text = prompt_path.read_text(encoding="utf-8").strip()
    except OSError:
        logger.info("System prompt %s not found, using default", prompt_path)
        return DEFAULT_SYSTEM_PROMPT
    return text or DEFAULT_SYSTEM_PROMPT


def build_user_prompt(context_text: str, question: str) -> str:
    return f"Context:\n{context_text}\n\nUser question: {question}"
