"""Tests for LocalFileStore on a temporary directory."""

import pytest

from repository.file_store import LocalFileStore
from util.errors import FileMissingError, FilesystemError


@pytest.fixture
def fs(tmp_path) -> LocalFileStore:
    return LocalFileStore(tmp_path / "documents")


def test_mkdir_all_reports_creation(fs):
    assert fs.mkdir_all("C1") is True
    assert fs.mkdir_all("C1") is False
    assert fs.exists("C1")


def test_write_read_and_readdir(fs):
    fs.write("C1/b.pdf", b"B")
    fs.write("C1/a.pdf", b"A")

    assert fs.read("C1/a.pdf") == b"A"
    assert fs.readdir("C1") == ["a.pdf", "b.pdf"]
    assert fs.readdir("missing") == []


def test_read_missing_file(fs):
    with pytest.raises(FileMissingError):
        fs.read("C1/none.pdf")


def test_copy_keeps_source(fs):
    fs.write("temp-1/a.pdf", b"data")

    fs.copy("temp-1/a.pdf", "C1/a.pdf")

    assert fs.read("C1/a.pdf") == b"data"
    assert fs.exists("temp-1/a.pdf")


def test_copy_missing_source(fs):
    with pytest.raises(FileMissingError):
        fs.copy("temp-1/a.pdf", "C1/a.pdf")


def test_rename_moves_directory(fs):
    fs.write("temp-1/a.pdf", b"data")

    fs.rename("temp-1", "C1")

    assert fs.read("C1/a.pdf") == b"data"
    assert not fs.exists("temp-1")


def test_rename_missing_source(fs):
    with pytest.raises(FileMissingError):
        fs.rename("temp-1", "C1")


def test_remove_file_and_directory(fs):
    fs.write("C1/a.pdf", b"A")
    fs.write("C2/b.pdf", b"B")

    fs.remove("C1/a.pdf")
    fs.remove("C2")
    fs.remove("never-existed")

    assert fs.readdir("C1") == []
    assert not fs.exists("C2")


@pytest.mark.parametrize("path", ["../outside.pdf", "C1/../../outside.pdf"])
def test_paths_cannot_escape_root(fs, path):
    with pytest.raises(FilesystemError):
        fs.write(path, b"x")
