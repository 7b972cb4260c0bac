"""
白板路由单元测试

专注于测试：
- HTTP请求/响应
- 状态码
- 统一响应格式
"""
import pytest
from fastapi import status

from ideaboard.api.middleware import board_id_from_path


@pytest.mark.unit
class TestBoardRoutes:
    """白板路由测试"""

    def test_create_board(self, client):
        response = client.post("/api/boards", json={"title": "Launch plan"})

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        assert body["code"] == 201
        assert body["message"] == "Board created"
        assert body["data"]["title"] == "Launch plan"
        assert body["data"]["node_count"] == 0

    def test_create_board_default_title(self, client):
        response = client.post("/api/boards", json={})

        assert response.json()["data"]["title"] == "Untitled Board"

    def test_list_boards(self, client):
        client.post("/api/boards", json={"title": "A"})
        client.post("/api/boards", json={"title": "B"})

        response = client.get("/api/boards")

        assert response.status_code == status.HTTP_200_OK
        assert [board["title"] for board in response.json()["data"]] == ["A", "B"]

    def test_get_unknown_board(self, client):
        response = client.get("/api/boards/nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["success"] is False
        assert body["details"]["resource_type"] == "board"

    def test_rename_board(self, client):
        board_id = client.post("/api/boards", json={}).json()["data"]["id"]

        response = client.patch(f"/api/boards/{board_id}", json={"title": "Renamed"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["title"] == "Renamed"

    def test_rename_validation_error(self, client):
        board_id = client.post("/api/boards", json={}).json()["data"]["id"]

        response = client.patch(f"/api/boards/{board_id}", json={"title": ""})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "validation_errors" in response.json()["details"]

    def test_delete_board(self, client):
        board_id = client.post("/api/boards", json={}).json()["data"]["id"]

        response = client.delete(f"/api/boards/{board_id}")

        assert response.status_code == status.HTTP_200_OK
        assert client.get(f"/api/boards/{board_id}").status_code == status.HTTP_404_NOT_FOUND

    def test_board_state(self, client):
        board_id = client.post("/api/boards", json={}).json()["data"]["id"]
        client.post(f"/api/boards/{board_id}/nodes/note", json={"content": "Idea"})

        data = client.get(f"/api/boards/{board_id}/state").json()["data"]

        assert data["node_count"] == 1
        assert data["nodes"][0]["payload"] == "Idea"
        assert data["revision"] == 1
        assert data["session_state"] == "uninitialized"
        assert data["is_recording"] is False

    def test_health(self, client):
        client.post("/api/boards", json={})

        response = client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["boards"] == 1
        assert "X-Request-ID" in response.headers


@pytest.mark.unit
class TestMiddleware:
    """中间件测试"""

    def test_request_id_echoed(self, client):
        response = client.get("/api/boards", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_board_id_from_path(self):
        assert board_id_from_path("/api/boards/b1/nodes/n1") == "b1"
        assert board_id_from_path("/api/boards") is None
        assert board_id_from_path("/health") is None
