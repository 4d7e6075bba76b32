import pytest

from snapvault.errors import DecryptionFailed, NotFound, StateError
from snapvault.packer import Packer
from snapvault.restorer import Restorer

from conftest import scratch_dirs, write_archive, write_tree


@pytest.fixture
def restorer(settings, tools, catalog):
    return Restorer(settings, tools, catalog)


def test_default_is_newest_committed(settings, tools, catalog, restorer):
    write_archive(settings, "20240102-000000-000000.tar.gpg", {"new.txt": b"untracked"})
    write_archive(settings, "20240101-000000-000000.tar.gpg", {"old.txt": b"committed"})
    tools.git.track("20240101-000000-000000.tar.gpg", "abcdef1")

    result = restorer.restore()

    assert result.entry.name == "20240101-000000-000000.tar.gpg"
    assert (settings.private_dir / "old.txt").read_bytes() == b"committed"
    assert not (settings.private_dir / "new.txt").exists()


def test_explicit_untracked_entry(settings, catalog, restorer):
    write_archive(settings, "20240102-000000-000000.tar.gpg", {"new.txt": b"untracked"})

    restorer.restore(catalog.find("latest"))
    assert (settings.private_dir / "new.txt").read_bytes() == b"untracked"


def test_no_committed_archives(settings, restorer):
    write_archive(settings, "20240102-000000-000000.tar.gpg", {"a.txt": b"a"})
    with pytest.raises(StateError, match="No committed archives"):
        restorer.restore()


def test_no_archives(restorer):
    with pytest.raises(NotFound):
        restorer.restore()


def test_replaces_existing_contents(settings, catalog, restorer):
    write_archive(settings, "20240101-000000-000000.tar.gpg", {"a.txt": b"a"})
    write_tree(settings.private_dir, {"stale.txt": b"gone", "dir/x": b"x"})

    restorer.restore(catalog.find("0"))

    assert sorted(p.name for p in settings.private_dir.iterdir()) == ["a.txt"]
    assert scratch_dirs(settings) == []


def test_decrypt_failure_keeps_private_dir(settings, tools, catalog, restorer):
    write_archive(settings, "20240101-000000-000000.tar.gpg", {"a.txt": b"a"})
    write_tree(settings.private_dir, {"keep.txt": b"keep"})
    tools.gpg.fail_on.add("20240101-000000-000000.tar.gpg")

    with pytest.raises(DecryptionFailed):
        restorer.restore(catalog.find("latest"))
    assert (settings.private_dir / "keep.txt").read_bytes() == b"keep"
    assert scratch_dirs(settings) == []


def test_pack_then_restore_round_trip(settings, tools, catalog, builder, restorer):
    original = {
        "a.txt": b"alpha",
        "nested/deep/b.bin": bytes(range(256)),
        "empty.txt": b"",
    }
    write_tree(settings.private_dir, original)
    Packer(settings, tools, catalog, builder=builder).pack()

    write_tree(settings.private_dir, {"a.txt": b"changed", "extra.txt": b"extra"})
    restorer.restore(catalog.find("latest"))

    restored = {
        p.relative_to(settings.private_dir).as_posix(): p.read_bytes()
        for p in settings.private_dir.rglob("*")
        if p.is_file()
    }
    assert restored == original
