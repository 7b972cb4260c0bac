"""
节点存储单元测试

专注于测试：
- 节点增删改
- 分组和连线的引用一致性
- 事件与上下文版本号
"""
import pytest

from ideaboard.core.exceptions import ConflictException, NodeNotFoundException, ValidationException
from ideaboard.domain.constants import BoardEventType
from tests.factories import ContentNodeFactory, TestDataBuilder


@pytest.mark.unit
class TestNodeStore:
    """节点存储测试"""

    def test_add_node_keeps_insertion_order(self, store):
        """测试按添加顺序返回节点"""
        nodes = [ContentNodeFactory() for _ in range(3)]
        for node in nodes:
            store.add_node(node)

        assert [node.id for node in store.list_nodes()] == [node.id for node in nodes]
        assert len(store) == 3

    def test_add_duplicate_id_rejected(self, store):
        """测试重复ID"""
        node = TestDataBuilder.create_note(id="dup")
        store.add_node(node)

        with pytest.raises(ConflictException):
            store.add_node(TestDataBuilder.create_note(id="dup"))
        assert len(store) == 1

    def test_add_node_with_unknown_group_rejected(self, store):
        with pytest.raises(ValidationException):
            store.add_node(TestDataBuilder.create_note(group_id="missing-group"))
        assert len(store) == 0

    def test_get_unknown_node_raises(self, store):
        with pytest.raises(NodeNotFoundException):
            store.get_node("nope")

    def test_remove_node_cascades_groups_and_edges(self, store):
        """测试删除节点同时移除分组成员和连线"""
        for node_id in ("a", "b", "c"):
            store.add_node(TestDataBuilder.create_note(id=node_id))
        group = store.group_nodes(["a", "b", "c"])
        store.connect_nodes("a", "b")
        store.connect_nodes("c", "a")

        store.remove_node("a")

        assert not store.has_node("a")
        assert store.groups()[0].id == group.id
        assert store.groups()[0].member_ids == ("b", "c")
        assert store.edges() == []

    def test_remove_last_member_drops_group(self, store):
        store.add_node(TestDataBuilder.create_note(id="a"))
        store.add_node(TestDataBuilder.create_note(id="b"))
        store.group_nodes(["a", "b"])

        store.remove_node("a")
        store.remove_node("b")

        assert store.groups() == []

    def test_move_does_not_bump_revision(self, store, events):
        """测试移动节点不改变上下文版本号"""
        store.add_node(TestDataBuilder.create_note(id="a", x=10, y=10))
        revision = store.revision

        moved = store.update_node_position("a", 50, 60)

        assert moved.position.x == 50
        assert moved.position.y == 60
        assert store.revision == revision
        assert events[-1].type == BoardEventType.NODE_MOVED

    def test_move_to_same_position_is_noop(self, store, events):
        store.add_node(TestDataBuilder.create_note(id="a", x=10, y=10))
        count = len(events)

        store.update_node_position("a", 10, 10)

        assert len(events) == count

    def test_content_change_bumps_revision(self, store):
        store.add_node(TestDataBuilder.create_note(id="a", payload="old"))
        revision = store.revision

        updated = store.update_node_content("a", "new")

        assert updated.payload == "new"
        assert store.revision == revision + 1

    def test_binary_content_not_editable(self, store):
        store.add_node(TestDataBuilder.create_file(id="img"))
        assert store.get_node("img").is_binary

        with pytest.raises(ValidationException):
            store.update_node_content("img", "text")

    def test_nodes_are_immutable_values(self, store):
        """测试调用方持有的节点不会被修改"""
        original = store.add_node(TestDataBuilder.create_note(id="a", payload="before"))

        store.update_node_content("a", "after")

        assert original.payload == "before"
        assert store.get_node("a").payload == "after"

    def test_connect_nodes(self, store, events):
        store.add_node(TestDataBuilder.create_note(id="a"))
        store.add_node(TestDataBuilder.create_note(id="b"))

        edge = store.connect_nodes("a", "b", "leads to")

        assert edge.label == "leads to"
        assert store.edges() == [edge]
        assert events[-1].type == BoardEventType.EDGE_CREATED

    def test_connect_duplicate_and_self_loop_ignored(self, store):
        store.add_node(TestDataBuilder.create_note(id="a"))
        store.add_node(TestDataBuilder.create_note(id="b"))
        store.connect_nodes("a", "b")

        assert store.connect_nodes("a", "b") is None
        assert store.connect_nodes("a", "a") is None
        assert len(store.edges()) == 1

    def test_connect_missing_endpoint_raises(self, store):
        store.add_node(TestDataBuilder.create_note(id="a"))

        with pytest.raises(NodeNotFoundException):
            store.connect_nodes("a", "ghost")

    def test_group_moves_nodes_out_of_previous_group(self, store):
        """测试每个节点最多属于一个分组"""
        for node_id in ("a", "b", "c"):
            store.add_node(TestDataBuilder.create_note(id=node_id))
        first = store.group_nodes(["a", "b"])

        second = store.group_nodes(["b", "c"])

        groups = {group.id: group for group in store.groups()}
        assert groups[first.id].member_ids == ("a",)
        assert groups[second.id].member_ids == ("b", "c")
        assert store.get_node("b").group_id == second.id

    def test_group_requires_members(self, store):
        with pytest.raises(ValidationException):
            store.group_nodes([])

    def test_ungroup_releases_members(self, store):
        store.add_node(TestDataBuilder.create_note(id="a"))
        store.add_node(TestDataBuilder.create_note(id="b"))
        store.add_node(TestDataBuilder.create_note(id="c"))
        store.group_nodes(["a", "b"])

        released = store.ungroup_nodes(["a", "b", "c"])

        assert released == ["a", "b"]
        assert store.groups() == []
        assert store.get_node("a").group_id is None

    def test_listener_errors_do_not_break_mutations(self, store):
        def broken(event):
            raise RuntimeError("boom")

        store.subscribe(broken)
        node = store.add_node(TestDataBuilder.create_note(id="a"))

        assert store.get_node("a") == node

    def test_unsubscribe(self, store):
        received = []
        unsubscribe = store.subscribe(received.append)
        unsubscribe()

        store.add_node(TestDataBuilder.create_note(id="a"))

        assert received == []

    def test_snapshot(self, store):
        store.add_node(TestDataBuilder.create_note(id="a"))
        store.add_node(TestDataBuilder.create_note(id="b"))
        store.connect_nodes("a", "b")

        state = store.snapshot()

        assert [node.id for node in state.nodes] == ["a", "b"]
        assert len(state.edges) == 1
        assert state.revision == store.revision
