"""Tests for the chat endpoints."""

import pytest

from conftest import make_doc
from porcelain_rag import ESCALATION_MESSAGE

CITED_ANSWER = "Yes [Product: 12, Source: description, ID: description_0]."


@pytest.fixture
def dinner_match(fake_store):
    fake_store.matches = [make_doc("12", similarity=0.82)]


@pytest.mark.usefixtures("dinner_match")
def test_chat_returns_answer_with_provenance(
    api_client, chat_generator, chat_completion_mock_factory
):
    with chat_completion_mock_factory(chat_generator, CITED_ANSWER):
        response = api_client.post(
            "/api/chat", json={"message": "Do you have dinner sets?"}
        )

    assert response.status_code == 200
    assert response.json() == {
        "answer": CITED_ANSWER,
        "provenance": [
            {
                "product_id": "12",
                "source_type": "description",
                "source_id": "description_0",
                "similarity": 0.82,
            }
        ],
        "retrieved_docs": 1,
        "escalated": False,
    }


def test_chat_escalates_without_matches(api_client, fake_store):
    fake_store.matches = []

    response = api_client.post("/api/chat", json={"message": "Garden chairs?"})

    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == ESCALATION_MESSAGE
    assert body["provenance"] == []
    assert body["escalated"] is True


@pytest.mark.parametrize(
    "payload",
    [{}, {"message": ""}, {"message": "   "}, {"message": 42}],
)
def test_chat_rejects_invalid_messages(api_client, fake_store, payload):
    response = api_client.post("/api/chat", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"
    assert fake_store.match_calls == []


@pytest.mark.usefixtures("dinner_match")
def test_chat_generation_failure_is_500(
    api_client, chat_generator, chat_completion_mock_factory
):
    with chat_completion_mock_factory(chat_generator, side_effect=RuntimeError("x")):
        response = api_client.post("/api/chat", json={"message": "Dinner sets?"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process chat request"}


@pytest.mark.usefixtures("dinner_match")
def test_chat_session_history_round_trip(
    api_client, chat_generator, chat_completion_mock_factory
):
    with chat_completion_mock_factory(chat_generator, CITED_ANSWER):
        api_client.post(
            "/api/chat",
            json={"message": "Do you have dinner sets?", "sessionId": "widget-1"},
        )

    response = api_client.get("/api/chat/history/widget-1")

    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"] == "widget-1"
    assert [message["role"] for message in body["messages"]] == ["user", "assistant"]
    assert body["messages"][1]["content"] == CITED_ANSWER
    assert body["messages"][1]["provenance"][0]["product_id"] == "12"


def test_history_of_unknown_session(api_client):
    response = api_client.get("/api/chat/history/nobody")

    assert response.status_code == 200
    assert response.json() == {"sessionId": "nobody", "messages": []}


def test_history_limit_is_validated(api_client):
    assert api_client.get("/api/chat/history/s?limit=0").status_code == 400


@pytest.mark.usefixtures("dinner_match")
def test_stream_returns_plain_text(
    api_client, chat_generator, chat_completion_mock_factory
):
    pieces = ["Yes ", "[Product: 12, Source: description, ID: description_0]."]

    with chat_completion_mock_factory(chat_generator, stream_chunks=pieces):
        response = api_client.post("/api/chat/stream", json={"message": "Dinner?"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "".join(pieces)


def test_stream_escalation(api_client, fake_store):
    fake_store.matches = []

    response = api_client.post("/api/chat/stream", json={"message": "Chairs?"})

    assert response.status_code == 200
    assert response.text == ESCALATION_MESSAGE


def test_stream_retrieval_failure_is_500(api_client, mock_embedding_service):
    def broken(_text):  # noqa: ANN001, ANN202
        raise RuntimeError("embedding failed")

    mock_embedding_service.embed_query = broken

    response = api_client.post("/api/chat/stream", json={"message": "Dinner?"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process streaming chat request"}


def test_feedback_is_acknowledged(api_client):
    response = api_client.post(
        "/api/chat/feedback",
        json={"sessionId": "widget-1", "rating": 5, "feedback": "Helpful"},
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Feedback received successfully"}


def test_feedback_rating_out_of_range(api_client):
    response = api_client.post("/api/chat/feedback", json={"rating": 9})
    assert response.status_code == 400


def test_search_groups_products(api_client, fake_store):
    fake_store.matches = [
        make_doc("12", similarity=0.7),
        make_doc("7", "faq", "faq_0", similarity=0.9),
    ]

    response = api_client.get("/api/chat/search", params={"q": "cups", "limit": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "cups"
    assert [product["product_id"] for product in body["products"]] == ["7", "12"]
    assert fake_store.match_calls == [5]


def test_search_requires_query(api_client):
    assert api_client.get("/api/chat/search").status_code == 400


def test_chat_health(api_client, fake_store):
    fake_store.matches = []
    assert api_client.get("/api/chat/health").json()["status"] == "OK"

    fake_store.healthy = False
    body = api_client.get("/api/chat/health").json()
    assert body["status"] == "ERROR"
    assert body["services"]["database"] == "ERROR"


def test_chat_model_escalation_is_returned_verbatim(
    api_client, fake_store, chat_generator, chat_completion_mock_factory
):
    fake_store.matches = [make_doc("12", similarity=0.2)]

    with chat_completion_mock_factory(chat_generator, ESCALATION_MESSAGE):
        body = api_client.post("/api/chat", json={"message": "Garden chairs?"}).json()

    assert body["answer"] == ESCALATION_MESSAGE
    assert body["provenance"] == []
    assert body["escalated"] is True
