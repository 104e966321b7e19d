"""Unit tests for identity storage."""

from __future__ import annotations

import threading

from identity_kit.storage import IdentityStorage, InMemoryIdentityStorage


class TestInMemoryIdentityStorage:
    """Tests for InMemoryIdentityStorage."""

    def test_is_identity_storage(self) -> None:
        assert isinstance(InMemoryIdentityStorage(), IdentityStorage)

    def test_get_missing(self) -> None:
        assert InMemoryIdentityStorage().get("missing") is None

    def test_set_and_get(self) -> None:
        storage = InMemoryIdentityStorage()

        storage.set("key", "value")

        assert storage.get("key") == "value"
        assert "key" in storage
        assert len(storage) == 1

    def test_set_none_removes(self) -> None:
        storage = InMemoryIdentityStorage({"key": "value"})

        storage.set("key", None)
        storage.set("other", None)

        assert storage.get("key") is None
        assert "key" not in storage
        assert len(storage) == 0

    def test_initial_values_are_copied(self) -> None:
        initial = {"key": "value"}
        storage = InMemoryIdentityStorage(initial)

        storage.set("key", "changed")

        assert initial == {"key": "value"}

    def test_concurrent_writers(self) -> None:
        storage = InMemoryIdentityStorage()

        def write(prefix: str) -> None:
            for i in range(200):
                storage.set(f"{prefix}-{i}", str(i))

        threads = [threading.Thread(target=write, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(storage) == 800
        assert storage.get("t3-199") == "199"
