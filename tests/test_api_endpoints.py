"""
Tests for the HTTP API and the relay wired up by the application lifespan.
"""
import json
import time


def user_payload(**overrides):
    payload = {
        "firstName": "Ann",
        "lastName": "Lee",
        "email": "ann@example.com",
        "password": "correct horse",
        "country": "IT",
        "nickname": "annie",
    }
    payload.update(overrides)
    return payload


def update_payload(**overrides):
    payload = user_payload(**overrides)
    payload.pop("password")
    return payload


def wait_for_messages(publisher, count, timeout=2.0):
    deadline = time.monotonic() + timeout
    while len(publisher.messages) < count and time.monotonic() < deadline:
        time.sleep(0.02)
    return publisher.messages


def wait_for_relay(client, timeout=2.0):
    """Give the relay time to open its cursor before mutating."""
    deadline = time.monotonic() + timeout
    while not client.get("/health").json()["relay"] and time.monotonic() < deadline:
        time.sleep(0.02)
    time.sleep(0.2)


class TestServiceEndpoints:
    def test_get_app(self):
        from user_service import get_app
        from user_service.main import app
        assert get_app() is app

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "user-service"
        assert data["status"] == "operational"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["publisher"] == "MemoryUserEventPublisher"
        assert data["connected"] is True
        assert data["relay"] is True

    def test_health_degraded_without_publisher_connection(self, client):
        publisher = client.app.state.user_service.publisher
        client.portal.call(publisher.disconnect)

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["connected"] is False


class TestUserEndpoints:
    """CRUD over /api/v1/users."""

    def test_create_user(self, client):
        response = client.post("/api/v1/users", json=user_payload())

        assert response.status_code == 200
        data = response.json()
        assert data["id"]
        assert data["firstName"] == "Ann"
        assert data["createdAt"] == data["updatedAt"]
        assert "password" not in data
        assert "hashedPassword" not in data

    def test_create_user_invalid(self, client):
        response = client.post("/api/v1/users", json=user_payload(email="not-an-email"))
        assert response.status_code == 422

        response = client.post("/api/v1/users", json=user_payload(password="short"))
        assert response.status_code == 422

    def test_create_user_blank_password(self, client):
        response = client.post("/api/v1/users", json=user_payload(password=" " * 8))

        assert response.status_code == 422
        assert "blank" in response.text

    def test_create_user_padded_password(self, client):
        response = client.post("/api/v1/users", json=user_payload(password="  secret12  "))
        assert response.status_code == 200

    def test_update_user(self, client):
        created = client.post("/api/v1/users", json=user_payload()).json()

        response = client.put(f"/api/v1/users/{created['id']}", json=update_payload(firstName="Anna"))

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == created["id"]
        assert data["firstName"] == "Anna"
        assert data["createdAt"] == created["createdAt"]

    def test_update_missing_user(self, client):
        response = client.put("/api/v1/users/missing", json=update_payload())
        assert response.status_code == 404

    def test_delete_user(self, client):
        created = client.post("/api/v1/users", json=user_payload()).json()

        response = client.delete(f"/api/v1/users/{created['id']}")
        assert response.status_code == 204

        response = client.delete(f"/api/v1/users/{created['id']}")
        assert response.status_code == 404

    def test_list_users(self, client):
        client.post("/api/v1/users", json=user_payload(email="ann@example.com"))
        client.post("/api/v1/users", json=user_payload(firstName="Bob", email="bob@example.com", country="FR"))

        response = client.get("/api/v1/users", params={"country": "FR"})

        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 1
        assert data["pageSize"] == 10
        assert [u["firstName"] for u in data["results"]] == ["Bob"]

        response = client.get("/api/v1/users", params={"page": 1, "page_size": 1})
        data = response.json()
        assert data["page"] == 1
        assert data["totalCount"] == 2
        assert len(data["results"]) == 1

    def test_list_users_invalid_page_size(self, client):
        response = client.get("/api/v1/users", params={"page_size": 1000})
        assert response.status_code == 422


class TestRelay:
    """Mutations through the API reach the configured publisher."""

    def test_mutations_published_in_order(self, client):
        publisher = client.app.state.user_service.publisher
        wait_for_relay(client)

        created = client.post("/api/v1/users", json=user_payload()).json()
        client.put(f"/api/v1/users/{created['id']}", json=update_payload(firstName="Anna"))
        client.delete(f"/api/v1/users/{created['id']}")

        messages = wait_for_messages(publisher, 3)
        payloads = [json.loads(m.value) for m in messages]

        assert [m.key for m in messages] == [created["id"]] * 3
        assert [p["operationType"] for p in payloads] == [
            "OPERATION_CREATE",
            "OPERATION_UPDATE",
            "OPERATION_DELETE",
        ]
        assert payloads[1]["beforeChange"]["firstName"] == "Ann"
        assert payloads[1]["afterChange"]["firstName"] == "Anna"
