"""Tests for serialized vault mutations."""

import asyncio
import posixpath
import threading
import time

import frontmatter
import pytest

from prioritymatrix.models import ItemRef
from prioritymatrix.mutation import KeyedLock, MutationGateway
from prioritymatrix.settings import default_config
from prioritymatrix.vault.writer import MutationError, VaultWriter


class RecordingWriter:
    """Stands in for VaultWriter and records the order edits run in."""

    def __init__(self):
        self.events = []
        self.other_file_started = threading.Event()
        self.overlapped = False

    def lock_key(self, path):
        return posixpath.normpath(path)

    def set_note_property(self, path, name, value):
        self.events.append(("start", value))
        if path == "b.md":
            self.other_file_started.set()
        if value == "m1":
            self.overlapped = self.other_file_started.wait(timeout=2)
        time.sleep(0.01)
        if value == "fail":
            self.events.append(("end", value))
            raise MutationError("disk full")
        self.events.append(("end", value))


class SlowVaultWriter(VaultWriter):
    """Real vault edits that linger long enough to expose overlap."""

    def __init__(self, vault_path):
        super().__init__(vault_path)
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    def set_note_property(self, path, name, value):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            time.sleep(0.05)
            super().set_note_property(path, name, value)
        finally:
            with self._guard:
                self.active -= 1


@pytest.fixture
def gateway(vault):
    return MutationGateway(VaultWriter(vault), KeyedLock(), replay_delay=0)


class TestOrdering:
    async def test_same_file_serialized_other_file_concurrent(self):
        writer = RecordingWriter()
        gateway = MutationGateway(writer, KeyedLock(), replay_delay=0)

        results = await asyncio.gather(
            gateway.set_note_property("a.md", "status", "m1"),
            gateway.set_note_property("a.md", "status", "m2"),
            gateway.set_note_property("b.md", "status", "m3"),
        )

        assert all(r.ok for r in results)
        same_file = [e for e in writer.events if e[1] in ("m1", "m2")]
        assert same_file == [("start", "m1"), ("end", "m1"), ("start", "m2"), ("end", "m2")]
        assert writer.overlapped is True

    async def test_failure_does_not_block_queue(self, caplog):
        writer = RecordingWriter()
        gateway = MutationGateway(writer, KeyedLock(), replay_delay=0.001)

        failed, after = await asyncio.gather(
            gateway.set_note_property("a.md", "status", "fail"),
            gateway.set_note_property("a.md", "status", "next"),
        )

        assert failed.ok is False
        assert failed.error == "disk full"
        assert failed.path == "a.md"
        assert after.ok is True
        assert writer.events[-2:] == [("start", "next"), ("end", "next")]
        assert "set_note_property failed for a.md" in caplog.text
        assert len(gateway.lock) == 0


class TestVaultMutations:
    async def test_aliased_paths_share_one_lock(self, vault):
        writer = SlowVaultWriter(vault)
        gateway = MutationGateway(writer, KeyedLock(), replay_delay=0)

        results = await asyncio.gather(
            gateway.set_note_property("Inbox.md", "first", 1),
            gateway.set_note_property("./Inbox.md", "second", 2),
            gateway.set_note_property("Projects//../Inbox.md", "third", 3),
        )

        assert all(r.ok for r in results)
        assert writer.max_active == 1
        metadata = frontmatter.loads((vault / "Inbox.md").read_text()).metadata
        assert (metadata["first"], metadata["second"], metadata["third"]) == (1, 2, 3)

    async def test_missing_file_reported(self, gateway):
        result = await gateway.set_note_property("Missing.md", "a", "b")
        assert result.ok is False
        assert "not found" in result.error

    async def test_toggle_task(self, gateway, vault):
        result = await gateway.toggle_task_completion("Tasks.md", 3, True)
        assert result.ok
        assert (vault / "Tasks.md").read_text().split("\n")[3] == "- [x] Read newsletter"

    async def test_clear_note_properties(self, gateway, vault):
        result = await gateway.clear_note_properties("Projects/Launch.md", ["eisenhower_status", "due_date"])
        assert result.ok
        assert frontmatter.loads((vault / "Projects" / "Launch.md").read_text()).metadata == {}


class TestMoveItem:
    async def test_move_note(self, gateway, vault):
        item = ItemRef(type="note", path="Inbox.md")
        result = await gateway.move_item(item, "delegate", default_config())
        assert result.ok
        post = frontmatter.loads((vault / "Inbox.md").read_text())
        assert post.metadata["eisenhower_status"] == "urgent_not_important"

    async def test_move_task_replaces_category_tag(self, gateway, vault):
        item = ItemRef(type="task", path="Tasks.md", line=1)
        result = await gateway.move_item(item, "eliminate", default_config())
        assert result.ok
        line = (vault / "Tasks.md").read_text().split("\n")[1]
        assert "#urgent-important" not in line
        assert line.endswith("#eliminate")

    async def test_unknown_section(self, gateway):
        result = await gateway.move_item(ItemRef(type="note", path="Inbox.md"), "nowhere", default_config())
        assert result.ok is False
        assert result.error == "Unknown section: nowhere"

    async def test_task_needs_line(self, gateway):
        result = await gateway.move_item(ItemRef(type="task", path="Tasks.md"), "schedule", default_config())
        assert result.ok is False

    async def test_disabled_rule(self, gateway):
        config = default_config()
        section = config.sections["schedule"]
        section.task_rules.enabled = False
        result = await gateway.move_item(ItemRef(type="task", path="Tasks.md", line=3), "schedule", config)
        assert result.ok is False
        assert result.error == "Section has no task rule"

    async def test_bulk_move_continues_after_failure(self, gateway, vault):
        items = [
            ItemRef(type="note", path="Inbox.md"),
            ItemRef(type="note", path="Gone.md"),
            ItemRef(type="task", path="Tasks.md", line=3),
        ]
        results = await gateway.bulk_move(items, "schedule", default_config())
        assert [r.ok for r in results] == [True, False, True]
        assert (vault / "Tasks.md").read_text().split("\n")[3] == "- [ ] Read newsletter #schedule"
