"""Tests for storage key derivation and the SDK-free backends."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from syncenv.config import StorageConfig, StorageType
from syncenv.errors import ConfigError, NotFoundError, StorageError
from syncenv.storage import (
    AzureBlobStore,
    GCSStore,
    LocalStore,
    MemoryStore,
    S3Store,
    build_key,
    create_store,
    tag_from_key,
)


class TestKeys:
    """build_key / tag_from_key."""

    @pytest.mark.parametrize(
        "prefix,tag,expected",
        [
            ("", "v1.0.0", "v1.0.0.env"),
            ("envs/", "v1.0.0", "envs/v1.0.0.env"),
            ("prefix", "test", "prefixtest.env"),
            ("", "feature/login", "feature/login.env"),
        ],
    )
    def test_build_key(self, prefix: str, tag: str, expected: str):
        assert build_key(prefix, tag) == expected

    def test_tag_from_key_inverts_build_key(self):
        for prefix, tag in [("", "v1"), ("envs/", "v2.0.0"), ("p", "main")]:
            assert tag_from_key(prefix, build_key(prefix, tag)) == tag

    def test_tag_from_bare_prefix_is_empty(self):
        assert tag_from_key("envs/", "envs/") == ""


class TestMemoryStore:
    """Lifecycle of the in-process store."""

    def test_upload_download(self):
        store = MemoryStore()
        store.upload("v1", b"data")
        assert store.download("v1") == b"data"

    def test_upload_replaces(self):
        store = MemoryStore()
        store.upload("v1", b"old")
        store.upload("v1", b"new")
        assert store.download("v1") == b"new"

    def test_download_missing(self):
        with pytest.raises(NotFoundError) as exc_info:
            MemoryStore().download("nope")
        assert exc_info.value.tag == "nope"

    def test_exists_and_delete(self):
        store = MemoryStore()
        store.upload("v1", b"x")
        assert store.exists("v1")

        store.delete("v1")
        assert not store.exists("v1")
        store.delete("v1")

    def test_list_strips_prefix_and_suffix(self):
        store = MemoryStore(prefix="envs/")
        store.upload("v1", b"a")
        store.upload("v2", b"b")
        assert sorted(store.list()) == ["v1", "v2"]

    def test_key_uses_prefix(self):
        assert MemoryStore(prefix="proj-").key("v1") == "proj-v1.env"

    def test_returned_bytes_are_copies(self):
        store = MemoryStore()
        buf = bytearray(b"abc")
        store.upload("v1", buf)
        buf[0] = ord("z")
        assert store.download("v1") == b"abc"

    def test_injected_error(self):
        store = MemoryStore(error=StorageError("boom"))
        for call in (
            lambda: store.upload("v1", b""),
            lambda: store.download("v1"),
            store.list,
            lambda: store.exists("v1"),
            lambda: store.delete("v1"),
        ):
            with pytest.raises(StorageError, match="boom"):
                call()

    def test_reset(self):
        store = MemoryStore()
        store.upload("v1", b"x")
        store.error = StorageError("boom")

        store.reset()
        assert store.error is None
        assert store.list() == []

    def test_concurrent_uploads(self):
        store = MemoryStore()

        def worker(n: int) -> None:
            for i in range(50):
                store.upload(f"t{n}-{i}", f"{n}:{i}".encode())
                assert store.exists(f"t{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.list()) == 400
        assert store.download("t3-17") == b"3:17"

    def test_readers_alongside_writers(self):
        """list/download/exists racing uploads never fail or see torn data."""
        store = MemoryStore(prefix="envs/")
        errors: list[BaseException] = []
        done = threading.Event()

        def writer(n: int) -> None:
            try:
                for i in range(50):
                    store.upload(f"t{n}-{i}", f"{n}:{i}".encode())
            except BaseException as exc:
                errors.append(exc)

        def reader() -> None:
            try:
                while not done.is_set():
                    for tag in store.list():
                        n, i = tag[1:].split("-")
                        assert store.exists(tag)
                        assert store.download(tag) == f"{n}:{i}".encode()
            except BaseException as exc:
                errors.append(exc)

        writers = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        readers = [threading.Thread(target=reader) for _ in range(4)]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join()
        done.set()
        for t in readers:
            t.join()

        assert errors == []
        tags = store.list()
        assert len(tags) == 400
        for n in range(8):
            for i in range(50):
                assert store.download(f"t{n}-{i}") == f"{n}:{i}".encode()


class TestLocalStore:
    """Directory-backed store."""

    def test_round_trip(self, tmp_path: Path):
        store = LocalStore(tmp_path / "remote")
        store.upload("v1.0.0", b"blob")

        assert (tmp_path / "remote" / "v1.0.0.env").read_bytes() == b"blob"
        assert store.download("v1.0.0") == b"blob"
        assert store.exists("v1.0.0")

    def test_prefix_with_slash_creates_directory(self, tmp_path: Path):
        store = LocalStore(tmp_path, prefix="envs/")
        store.upload("v1", b"x")
        assert (tmp_path / "envs" / "v1.env").is_file()
        assert store.list() == ["v1"]

    def test_list_ignores_other_prefixes(self, tmp_path: Path):
        LocalStore(tmp_path, prefix="a-").upload("v1", b"x")
        LocalStore(tmp_path, prefix="b-").upload("v2", b"y")

        assert LocalStore(tmp_path, prefix="a-").list() == ["v1"]

    def test_list_missing_root(self, tmp_path: Path):
        assert LocalStore(tmp_path / "nothing-here").list() == []

    def test_no_temp_files_left(self, tmp_path: Path):
        store = LocalStore(tmp_path)
        store.upload("v1", b"x")
        store.upload("v1", b"y")
        assert [p.name for p in tmp_path.iterdir()] == ["v1.env"]

    def test_download_missing(self, tmp_path: Path):
        with pytest.raises(NotFoundError):
            LocalStore(tmp_path).download("v9")

    def test_delete(self, tmp_path: Path):
        store = LocalStore(tmp_path)
        store.upload("v1", b"x")
        store.delete("v1")
        store.delete("v1")
        assert not store.exists("v1")


class TestCreateStore:
    """Factory mapping configuration to backends."""

    def test_local(self, tmp_path: Path):
        store = create_store(
            StorageConfig(type=StorageType.LOCAL, path=tmp_path, prefix="p/")
        )
        assert isinstance(store, LocalStore)
        assert store.root == tmp_path
        assert store.prefix == "p/"

    def test_s3(self):
        store = create_store(
            StorageConfig(type=StorageType.S3, bucket="b", region="eu-west-1")
        )
        assert isinstance(store, S3Store)
        assert (store.bucket, store.region) == ("b", "eu-west-1")

    def test_azure(self):
        store = create_store(
            StorageConfig(type=StorageType.AZURE, account_name="acct", container_name="c")
        )
        assert isinstance(store, AzureBlobStore)
        assert store.container_name == "c"

    def test_gcs(self):
        store = create_store(
            StorageConfig(type=StorageType.GCS, project_id="proj", bucket_name="b")
        )
        assert isinstance(store, GCSStore)
        assert store.bucket_name == "b"

    def test_missing_type(self):
        with pytest.raises(ConfigError):
            create_store(StorageConfig())
