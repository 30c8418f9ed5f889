"""Customer chat widget using Streamlit."""

import uuid

import streamlit as st

from porcelain_rag import build_services
from porcelain_rag.config import config

CONFIDENCE_HIGH = 0.6
CONFIDENCE_MEDIUM = 0.3

MAX_SNIPPET_PREVIEW_LENGTH = 200

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "services": None,
            "session_id": str(uuid.uuid4()),
            "transcript": [],
            "system_ready": False,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def new_session() -> None:
        """Start a fresh widget session with an empty transcript."""
        st.session_state.session_id = str(uuid.uuid4())
        st.session_state.transcript = []

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the assistant has been wired up.

        Returns:
            bool: True once the services are built.
        """
        return st.session_state.get("services") is not None


def validate_configuration() -> bool:
    """Validate application configuration and show user feedback.

    Returns:
        bool: True if configuration is valid, False otherwise.
    """
    try:
        config.validate()
    except ValueError as e:
        st.error(f"Configuration Error: {e}")
        return False
    else:
        return True


def initialize_system() -> bool:
    """Build the assistant's services.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Connecting to the product knowledge base..."):
            st.session_state.services = build_services()
            st.session_state.system_ready = True

        logger.info(
            "Chat widget initialized for session %s", st.session_state.session_id
        )
    except (ValueError, RuntimeError) as e:
        logger.exception("Failed to initialize assistant")
        st.error(f"Failed to initialize assistant: {e}")
        return False
    else:
        return True


def render_sidebar() -> None:
    """Render the sidebar with session controls and system status."""
    with st.sidebar:
        st.header("RAK Porcelain Assistant")

        if (
            not SessionState.is_system_ready()
            and st.button("Connect", use_container_width=True)
            and validate_configuration()
            and initialize_system()
        ):
            st.rerun()

        st.divider()
        st.subheader("Status")
        if SessionState.is_system_ready():
            st.write("**Assistant:** Ready")
        else:
            st.write("**Assistant:** Not connected")
        st.caption(f"Session: {st.session_state.session_id}")

        if SessionState.is_system_ready() and st.button(
            "New Conversation", use_container_width=True
        ):
            SessionState.new_session()
            st.rerun()


def render_provenance(result) -> None:  # noqa: ANN001
    """Show which product sources an answer was grounded on."""
    if result.escalated or not result.retrieved_docs:
        return

    confidence = result.confidence
    confidence_color = (
        "green"
        if confidence > CONFIDENCE_HIGH
        else "orange"
        if confidence > CONFIDENCE_MEDIUM
        else "red"
    )
    st.markdown(f"**Match quality:** :{confidence_color}[{confidence:.2f}]")

    with st.expander("Sources", expanded=False):
        for doc in result.retrieved_docs:
            label = f"Product {doc.product_id} - {doc.source_type}"
            if doc.source_id:
                label += f" ({doc.source_id})"
            st.markdown(f"**{label}** - similarity {doc.similarity:.3f}")
            snippet = doc.text_snippet
            if len(snippet) > MAX_SNIPPET_PREVIEW_LENGTH:
                snippet = snippet[:MAX_SNIPPET_PREVIEW_LENGTH] + "..."
            st.code(snippet)


def render_chat() -> None:
    """Render the transcript and the message box."""
    for role, content, result in st.session_state.transcript:
        with st.chat_message(role):
            st.write(content)
            if result is not None:
                render_provenance(result)

    question = st.chat_input("Ask about RAK Porcelain products...")
    if not question or not question.strip():
        return

    with st.chat_message("user"):
        st.write(question)

    with st.chat_message("assistant"), st.spinner("Searching products..."):
        try:
            result = st.session_state.services.conversations.answer(
                question, session_id=st.session_state.session_id
            )
        except (ValueError, RuntimeError, OSError) as e:
            logger.exception("Question processing failed")
            st.error(f"Failed to answer: {e}")
            return
        st.write(result.answer)
        render_provenance(result)

    st.session_state.transcript.append(("user", question, None))
    st.session_state.transcript.append(("assistant", result.answer, result))


def main() -> None:
    """Main entry point for the Streamlit chat widget."""
    st.set_page_config(page_title="RAK Porcelain Assistant", layout="centered")

    SessionState.initialize()

    st.title("RAK Porcelain Assistant")
    st.markdown("---")

    render_sidebar()

    if not SessionState.is_system_ready():
        st.info("Connect the assistant using the sidebar to get started.")
        return

    render_chat()


if __name__ == "__main__":
    main()
