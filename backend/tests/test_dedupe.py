"""Tests for the processed-webhook registry."""

import json
import threading

from checkout.dedupe import ChainedDedupStore, LocalDedupStore, RemoteDedupStore, dedupe_id
from checkout.errors import RemoteTransientError


class FlakyRemote:
    def __init__(self, up=True):
        self.up = up
        self.ids = set()

    def find_webhook_events(self, event_id):
        if not self.up:
            raise RemoteTransientError("Strapi GET /api/webhook-events failed after 1 attempts")
        return [{"id": 1, "eventId": event_id}] if event_id in self.ids else []

    def create_webhook_event(self, event_id, payload, processed_at):
        if not self.up:
            raise RemoteTransientError("Strapi POST /api/webhook-events failed after 2 attempts")
        self.ids.add(event_id)
        return {"id": 1, "eventId": event_id}


class TestLocalDedupStore:
    def test_mark_then_processed(self, tmp_path) -> None:
        store = LocalDedupStore(str(tmp_path / "seen.json"))

        assert store.is_processed("evt_1") is False
        store.mark_processed("evt_1", {"event": "payment.captured"})
        assert store.is_processed("evt_1") is True

    def test_survives_restart(self, tmp_path) -> None:
        path = str(tmp_path / "seen.json")
        LocalDedupStore(path).mark_processed("evt_1")

        restarted = LocalDedupStore(path)

        assert restarted.is_processed("evt_1") is True
        assert restarted.is_processed("evt_2") is False

    def test_file_holds_json_array(self, tmp_path) -> None:
        path = tmp_path / "seen.json"
        store = LocalDedupStore(str(path))
        store.mark_processed("b")
        store.mark_processed("a")

        assert json.loads(path.read_text()) == ["a", "b"]

    def test_corrupt_file_starts_empty(self, tmp_path) -> None:
        path = tmp_path / "seen.json"
        path.write_text("{not json")

        store = LocalDedupStore(str(path))

        assert len(store) == 0
        store.mark_processed("evt_1")
        assert json.loads(path.read_text()) == ["evt_1"]

    def test_creates_missing_directory(self, tmp_path) -> None:
        path = tmp_path / "nested" / "seen.json"
        LocalDedupStore(str(path)).mark_processed("evt_1")

        assert path.exists()

    def test_concurrent_marks_all_recorded(self, tmp_path) -> None:
        path = str(tmp_path / "seen.json")
        store = LocalDedupStore(path)
        ids = [f"evt_{i}" for i in range(25)]

        threads = [threading.Thread(target=store.mark_processed, args=(i,)) for i in ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(store.is_processed(i) for i in ids)
        assert sorted(LocalDedupStore(path)._ids) == sorted(ids)


class TestChainedDedupStore:
    def test_uses_remote_when_available(self, tmp_path) -> None:
        remote = FlakyRemote()
        local = LocalDedupStore(str(tmp_path / "seen.json"))
        chain = ChainedDedupStore(local, RemoteDedupStore(remote))

        chain.mark_processed("evt_1", {"event": "payment.captured"})

        assert "evt_1" in remote.ids
        assert local.is_processed("evt_1") is False
        assert chain.is_processed("evt_1") is True

    def test_falls_back_to_local_when_remote_down(self, tmp_path) -> None:
        remote = FlakyRemote(up=False)
        path = str(tmp_path / "seen.json")
        chain = ChainedDedupStore(LocalDedupStore(path), RemoteDedupStore(remote))

        assert chain.is_processed("evt_1") is False
        chain.mark_processed("evt_1")
        assert chain.is_processed("evt_1") is True

        restarted = ChainedDedupStore(LocalDedupStore(path), RemoteDedupStore(remote))
        assert restarted.is_processed("evt_1") is True

    def test_local_marks_seen_after_remote_recovers(self, tmp_path) -> None:
        remote = FlakyRemote(up=False)
        chain = ChainedDedupStore(LocalDedupStore(str(tmp_path / "seen.json")), RemoteDedupStore(remote))
        chain.mark_processed("evt_1")

        remote.up = True

        assert chain.is_processed("evt_1") is True

    def test_local_only(self, tmp_path) -> None:
        chain = ChainedDedupStore(LocalDedupStore(str(tmp_path / "seen.json")))

        chain.mark_processed("evt_1")

        assert chain.is_processed("evt_1") is True


def test_dedupe_id_prefers_event_id():
    assert dedupe_id("evt_abc", "payment.captured", "pay_1") == "evt_abc"
    assert dedupe_id(None, "payment.captured", "pay_1") == "payment.captured:pay_1"
    assert dedupe_id("", "payment.failed", "pay_1") == "payment.failed:pay_1"
