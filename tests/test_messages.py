"""
Tests for the GET /api/messages endpoint.

Tests cover:
- Empty store
- Listing after sends returns every record with every field
- Listing spans all users (no per-user scoping)
- Storage failures surface as 500 Internal server error
"""

import pytest


def send_message(client, user_id: str, headers: dict, recipient: str, content: str) -> dict:
    """Helper to create a message via the send endpoint."""
    response = client.post(
        f"/api/users/{user_id}/messages",
        json={"recipient": recipient, "content": content},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def seeded(client, make_user, auth_headers):
    """Two users with messages sent through the API; returns the sent records."""
    alice = make_user("alice@example.com")
    bob = make_user("bob@example.com")

    sent = [
        send_message(client, alice, auth_headers(alice), "15551234567", "Hello world"),
        send_message(client, alice, auth_headers(alice), "15557654321", "How are you?"),
        send_message(client, bob, auth_headers(bob), "447700900123", "Goodbye"),
    ]
    return {"alice": alice, "bob": bob, "sent": sent}


class TestMessagesBasic:
    """Test basic messages retrieval."""

    def test_empty_database(self, client):
        """Test GET /api/messages with no messages returns empty list."""
        response = client.get("/api/messages")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Messages retrieved successfully"
        assert body["data"] == []

    def test_lists_every_sent_message(self, client, seeded):
        """Test listing after N sends returns all N records."""
        response = client.get("/api/messages")

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data) == 3
        assert {m["id"] for m in data} == {m["id"] for m in seeded["sent"]}

    def test_message_fields(self, client, seeded):
        """Test listed records carry the same fields the send returned."""
        response = client.get("/api/messages")

        listed = {m["id"]: m for m in response.json()["data"]}
        for sent in seeded["sent"]:
            assert set(listed[sent["id"]]) == {"id", "recipient", "content", "status", "userId", "createdAt"}
            assert listed[sent["id"]]["recipient"] == sent["recipient"]
            assert listed[sent["id"]]["content"] == sent["content"]
            assert listed[sent["id"]]["userId"] == sent["userId"]
            assert listed[sent["id"]]["status"] == "sent"

    def test_lists_messages_of_all_users(self, client, seeded):
        """Test the listing is not scoped to a single user."""
        response = client.get("/api/messages")

        owners = {m["userId"] for m in response.json()["data"]}
        assert owners == {seeded["alice"], seeded["bob"]}

    def test_listing_needs_no_session(self, client, seeded):
        """Test the listing is readable without an Authorization header."""
        response = client.get("/api/messages")

        assert response.status_code == 200

    def test_each_call_reads_fresh(self, client, seeded, auth_headers):
        """Test a send between two listings shows up in the second one."""
        before = client.get("/api/messages").json()["data"]
        alice = seeded["alice"]
        send_message(client, alice, auth_headers(alice), "15550001111", "Another")
        after = client.get("/api/messages").json()["data"]

        assert len(after) == len(before) + 1

    def test_failed_sends_are_not_listed(self, client, gateway, seeded, auth_headers):
        """Test a delivery failure leaves no trace in the listing."""
        gateway.error = RuntimeError("provider down")
        alice = seeded["alice"]
        response = client.post(
            f"/api/users/{alice}/messages",
            json={"recipient": "15550001111", "content": "lost"},
            headers=auth_headers(alice),
        )
        assert response.status_code == 500

        data = client.get("/api/messages").json()["data"]
        assert len(data) == 3
        assert all(m["content"] != "lost" for m in data)

    def test_response_includes_request_id_header(self, client):
        """Test that response includes X-Request-ID header."""
        response = client.get("/api/messages")

        assert "x-request-id" in response.headers


class TestMessagesErrors:
    """Test read-path failures."""

    def test_storage_error_returns_500(self, client, monkeypatch):
        """Test a failing query returns 500 with the error embedded."""
        from app import main
        from app.errors import StorageError

        def failing_list_messages(db):
            raise StorageError(data={"type": "OperationalError", "detail": "no such table: messages"})

        monkeypatch.setattr(main, "list_messages", failing_list_messages)

        response = client.get("/api/messages")

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Internal server error"
        assert body["data"]["detail"] == "no such table: messages"

    def test_missing_table_returns_500(self, client):
        """Test a real database failure maps to Internal server error."""
        from app.models import Message
        from app.storage import engine

        Message.__table__.drop(bind=engine)

        response = client.get("/api/messages")

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Internal server error"
        assert body["data"]["type"] == "OperationalError"


class TestMessageTimestamps:
    def test_created_at_carries_utc_offset(self, client, seeded):
        """Test createdAt is ISO-8601 with an explicit UTC offset in both responses."""
        for sent in seeded["sent"]:
            assert sent["createdAt"].endswith(("Z", "+00:00"))

        for listed in client.get("/api/messages").json()["data"]:
            assert listed["createdAt"].endswith(("Z", "+00:00"))
