"""Unit tests for StagingNamespaceManager."""

import re

import pytest

from model.client import DocumentSlot
from util.errors import InvalidDocumentError, NamespaceCollisionError


def test_allocate_creates_unique_staging_directories(staging, files, codec):
    ids = {staging.allocate() for _ in range(20)}
    assert len(ids) == 20
    for ns in ids:
        assert codec.is_staging_id(ns)
        assert files.exists(ns)


def test_allocate_gives_up_after_repeated_collisions(staging, files, monkeypatch):
    monkeypatch.setattr(files, "mkdir_all", lambda path: False)
    with pytest.raises(NamespaceCollisionError):
        staging.allocate()


def test_write_names_file_after_slot_with_random_token(staging, files):
    ns = staging.allocate()
    first = staging.write(ns, DocumentSlot.nic_proof, b"%PDF-1.4", "scan.PDF")
    second = staging.write(ns, DocumentSlot.nic_proof, b"%PDF-1.4", ".pdf")

    assert first.namespace == ns
    assert re.fullmatch(r"nic_proof-[0-9a-f-]{36}\.pdf", first.filename)
    assert first.filename != second.filename
    assert files.read(first.key) == b"%PDF-1.4"


def test_write_into_permanent_namespace(staging, files):
    entry = staging.write("C1a2b3c4d", DocumentSlot.dob_proof, b"\x89PNG", "photo.png")
    assert entry.namespace == "C1a2b3c4d"
    assert files.exists("C1a2b3c4d/" + entry.filename)


@pytest.mark.parametrize("filename", ["malware.exe", "noext", "archive.tar.gz"])
def test_write_rejects_disallowed_extensions(staging, files, filename):
    ns = staging.allocate()
    with pytest.raises(InvalidDocumentError):
        staging.write(ns, DocumentSlot.vat_proof, b"x", filename)
    assert files.readdir(ns) == []


def test_filename_without_extension_is_reported_as_such(staging):
    ns = staging.allocate()
    with pytest.raises(InvalidDocumentError, match=r"extension \(none\) not allowed"):
        staging.write(ns, DocumentSlot.nic_proof, b"%PDF", "scan")
