"""
白板摘要、连线建议和快照路由单元测试
"""
import pytest
from fastapi import status

from ideaboard.core.exceptions import AssistantUnavailableException


@pytest.fixture
def board_id(client) -> str:
    return client.post("/api/boards", json={"title": "Board"}).json()["data"]["id"]


def _add_note(client, board_id, content) -> str:
    return client.post(f"/api/boards/{board_id}/nodes/note", json={"content": content}).json()["data"]["id"]


@pytest.mark.unit
class TestInsightRoutes:
    """摘要和连线建议路由测试"""

    def test_summary_of_empty_board(self, client, board_id, provider):
        response = client.get(f"/api/boards/{board_id}/summary")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["summary"].startswith("This board is empty")
        assert provider.opened == 0

    def test_summary(self, client, board_id, provider):
        _add_note(client, board_id, "Cats")
        provider.queue(text="All about cats.")

        response = client.get(f"/api/boards/{board_id}/summary")

        data = response.json()["data"]
        assert data == {"summary": "All about cats.", "node_count": 1}

    def test_summary_unavailable(self, client, board_id, provider):
        _add_note(client, board_id, "Cats")
        provider.replies.append(AssistantUnavailableException("offline"))

        response = client.get(f"/api/boards/{board_id}/summary")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["success"] is False

    def test_connection_suggestions(self, client, board_id, provider):
        first = _add_note(client, board_id, "Cats")
        second = _add_note(client, board_id, "Dogs")
        provider.queue(tool_calls=[{
            "name": "connect_nodes",
            "arguments": {"connections": [{"fromId": first, "toId": second, "label": "pets"}]},
        }])

        response = client.get(f"/api/boards/{board_id}/suggestions/connections")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == [
            {"source_node_id": first, "target_node_id": second, "reason": "pets"}
        ]
        state = client.get(f"/api/boards/{board_id}/state").json()["data"]
        assert state["edges"] == []

    def test_unknown_board(self, client):
        response = client.get("/api/boards/missing/summary")

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.unit
class TestSnapshotRoutes:
    """快照路由测试"""

    def test_create_snapshot(self, client, board_id):
        node_id = _add_note(client, board_id, "Cats")

        response = client.post(f"/api/boards/{board_id}/snapshot", json={"created_by": "alice"})

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["board_id"] == board_id
        assert data["created_by"] == "alice"
        assert [node["id"] for node in data["state"]["nodes"]] == [node_id]

    def test_create_snapshot_without_body(self, client, board_id):
        response = client.post(f"/api/boards/{board_id}/snapshot")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["data"]["created_by"] is None

    def test_list_snapshots(self, client, board_id):
        client.post(f"/api/boards/{board_id}/snapshot")
        _add_note(client, board_id, "Cats")
        client.post(f"/api/boards/{board_id}/snapshot")

        snapshots = client.get(f"/api/boards/{board_id}/snapshots").json()["data"]

        assert [len(snapshot["state"]["nodes"]) for snapshot in snapshots] == [0, 1]
