from datetime import datetime

import pytest

from snapvault.builder import ArchiveBuilder
from snapvault.errors import NoChanges, StateError
from snapvault.packer import Packer

from conftest import scratch_dirs, write_archive, write_tree


@pytest.fixture
def packer(settings, tools, catalog, builder):
    return Packer(settings, tools, catalog, builder=builder)


def _archives(settings):
    return sorted(p.name for p in settings.archive_dir.glob("*.tar.gpg"))


class TestPack:
    def test_empty_private_dir(self, packer, settings):
        with pytest.raises(StateError, match="No files found"):
            packer.pack()
        assert _archives(settings) == []

    def test_creates_missing_directories(self, packer, settings):
        settings.archive_dir.rmdir()
        settings.private_dir.rmdir()
        with pytest.raises(StateError):
            packer.pack()
        assert settings.archive_dir.is_dir()
        assert settings.private_dir.is_dir()

    def test_first_pack_skips_comparison(self, packer, settings, tools):
        write_tree(settings.private_dir, {"a.txt": b"a"})

        result = packer.pack()

        assert _archives(settings) == [result.archive.name]
        assert result.changed is None
        assert tools.gpg.decrypted == []
        assert tools.git.staged == [f".archives/{result.archive.name}"]
        assert result.staged == f".archives/{result.archive.name}"

    def test_unchanged_directory(self, packer, settings, tools):
        write_tree(settings.private_dir, {"a.txt": b"a"})
        packer.pack()
        before = _archives(settings)

        with pytest.raises(NoChanges, match="--force"):
            packer.pack()

        assert _archives(settings) == before
        assert len(tools.git.staged) == 1
        assert scratch_dirs(settings) == []

    def test_force_creates_new_archive(self, packer, settings):
        write_tree(settings.private_dir, {"a.txt": b"a"})
        packer.pack()

        result = packer.pack(force=True)

        assert len(_archives(settings)) == 2
        assert result.forced
        assert _archives(settings)[-1] == result.archive.name

    def test_changed_directory(self, packer, settings, catalog):
        write_tree(settings.private_dir, {"a.txt": b"a"})
        first = packer.pack()
        (settings.private_dir / "a.txt").write_bytes(b"b")

        second = packer.pack()

        assert second.changed is True
        assert catalog.find("latest").name == second.archive.name
        assert second.archive.name > first.archive.name

    def test_compares_against_newest_archive(self, packer, settings):
        write_archive(settings, "20240101-000000-000000.tar.gpg", {"a.txt": b"old"})
        write_archive(settings, "20240102-000000-000000.tar.gpg", {"a.txt": b"current"})
        write_tree(settings.private_dir, {"a.txt": b"current"})

        with pytest.raises(NoChanges):
            packer.pack()


class TestBuilder:
    def test_names_sort_chronologically(self, settings, tools, builder):
        write_tree(settings.private_dir, {"a.txt": b"a"})
        names = [builder.build().name for _ in range(3)]
        assert names == sorted(names)
        assert names[0] == "20300101-000000-000000.tar.gpg"

    def test_refuses_name_that_sorts_before_existing(self, settings, tools, builder):
        write_archive(settings, "29991231-000000-000000.tar.gpg", {})
        builder.clock = lambda: datetime(2000, 1, 1)
        with pytest.raises(StateError, match="system clock"):
            builder.next_name()

    def test_external_builder(self, settings, tools, monkeypatch):
        settings.builder = ["make-archive", "--quiet"]
        calls = []

        def fake_run(executable, args=(), **kwargs):
            calls.append([executable] + list(args))
            write_archive(settings, "20990101-000000-000000.tar.gpg", {"a": b"a"})

        monkeypatch.setattr(tools.runner, "run", fake_run)
        path = ArchiveBuilder(settings, tools).build()

        assert calls == [["make-archive", "--quiet"]]
        assert path.name == "20990101-000000-000000.tar.gpg"

    def test_external_builder_must_create_archive(self, settings, tools, monkeypatch):
        settings.builder = ["noop"]
        monkeypatch.setattr(tools.runner, "run", lambda *a, **k: None)
        with pytest.raises(StateError, match="did not create"):
            ArchiveBuilder(settings, tools).build()


class TestClean:
    def test_keeps_newest_untracked(self, packer, settings, tools):
        names = [
            "20240101-000000-000000.tar.gpg",
            "20240102-000000-000000.tar.gpg",
            "20240103-000000-000000.tar.gpg",
        ]
        for name in names:
            write_archive(settings, name, {})
        tools.git.untracked_paths = [f".archives/{n}" for n in names[1:]]

        result = packer.clean()

        assert result.kept == ".archives/20240103-000000-000000.tar.gpg"
        assert result.removed == [".archives/20240102-000000-000000.tar.gpg"]
        assert _archives(settings) == [names[0], names[2]]

    def test_nothing_to_clean(self, packer, settings, tools):
        write_archive(settings, "20240101-000000-000000.tar.gpg", {})
        tools.git.untracked_paths = [".archives/20240101-000000-000000.tar.gpg"]

        result = packer.clean()
        assert result.removed == []
        assert _archives(settings) == ["20240101-000000-000000.tar.gpg"]
