"""DocumentService flows over in-memory stores."""

import pytest

from core.entities import IncomingDocument
from model.client import DocumentSlot
from service.document_service import DocumentService
from util.errors import AppError


@pytest.fixture
def service(store, files, codec, locks, staging, coordinator, trigger) -> DocumentService:
    return DocumentService(store, files, codec, locks, staging, coordinator, trigger)


def _pdf(name: str = "scan.pdf", data: bytes = b"%PDF-1.7") -> IncomingDocument:
    return IncomingDocument(filename=name, data=data)


class TestCreateClientWithDocuments:
    @pytest.mark.asyncio
    async def test_documents_end_up_in_client_namespace(self, service, store, files, trigger):
        res = await service.create_client_with_documents(
            name="Ada",
            documents={DocumentSlot.nic_proof: _pdf(), DocumentSlot.dob_proof: _pdf("dob.PNG", b"\x89PNG")},
            client_id="C123",
        )

        assert res.id == "C123"
        assert res.promotion.allFilesUpdated
        assert res.promotion.relocation == "rename"
        nic = store.path("C123", DocumentSlot.nic_proof)
        dob = store.path("C123", DocumentSlot.dob_proof)
        assert nic.startswith("/uploads/documents/C123/nic_proof-") and nic.endswith(".pdf")
        assert dob.startswith("/uploads/documents/C123/dob_proof-") and dob.endswith(".png")
        assert files.read(nic[len("/uploads/documents/"):]) == b"%PDF-1.7"
        assert [d for d in files.dirs if d.startswith("temp-")] == []
        assert trigger.reasons == ["promote:C123"]

    @pytest.mark.asyncio
    async def test_without_documents_only_creates_client(self, service, store, files):
        res = await service.create_client_with_documents(name="Ada", documents={})

        assert res.promotion is None
        assert res.id in store.records
        assert files.writes == 0

    @pytest.mark.asyncio
    async def test_rejected_extension_creates_nothing(self, service, store):
        with pytest.raises(AppError) as exc:
            await service.create_client_with_documents(
                name="Ada", documents={DocumentSlot.nic_proof: _pdf("virus.exe")}
            )

        assert exc.value.status_code == 400
        assert store.records == {}

    @pytest.mark.asyncio
    async def test_staging_shaped_client_id_is_a_conflict(self, service, files):
        with pytest.raises(AppError) as exc:
            await service.create_client_with_documents(
                name=None, documents={DocumentSlot.nic_proof: _pdf()}, client_id="temp-1"
            )

        assert exc.value.status_code == 409
        assert files.writes == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("client_id", ["..", "x/y", "."])
    async def test_client_id_must_be_a_path_segment(self, service, store, files, client_id):
        with pytest.raises(AppError) as exc:
            await service.create_client_with_documents(
                name="Ada", documents={DocumentSlot.nic_proof: _pdf()}, client_id=client_id
            )

        assert exc.value.status_code == 400
        assert store.records == {}
        assert files.writes == 0


class TestUploadDocument:
    @pytest.mark.asyncio
    async def test_upload_replaces_slot_and_discards_old_file(
        self, service, store, files, trigger
    ):
        files.write("C1/nic_proof-old.pdf", b"old")
        store.add("C1", nic_proof="/uploads/documents/C1/nic_proof-old.pdf")

        res = await service.upload_document("C1", DocumentSlot.nic_proof, _pdf())

        assert store.path("C1", DocumentSlot.nic_proof) == res.documentUrl
        assert res.documentUrl.startswith("/uploads/documents/C1/nic_proof-")
        assert res.fileType == "application/pdf"
        assert res.fileSize == len(b"%PDF-1.7")
        assert not files.exists("C1/nic_proof-old.pdf")
        assert files.read(f"C1/{res.fileName}") == b"%PDF-1.7"
        assert trigger.reasons == ["upload:C1"]

    @pytest.mark.asyncio
    async def test_upload_survives_dangling_old_reference(self, service, store):
        store.add("C1", nic_proof="/documents/temp-9/nic_proof-gone.pdf")

        res = await service.upload_document("C1", DocumentSlot.nic_proof, _pdf())

        assert store.path("C1", DocumentSlot.nic_proof) == res.documentUrl

    @pytest.mark.asyncio
    async def test_upload_to_unknown_client(self, service, files):
        with pytest.raises(AppError) as exc:
            await service.upload_document("C404", DocumentSlot.nic_proof, _pdf())

        assert exc.value.status_code == 404
        assert not files.exists("C404")

    @pytest.mark.asyncio
    async def test_upload_while_namespace_locked(self, service, store, locks):
        store.add("C1")
        locks.busy.add("C1")

        with pytest.raises(AppError) as exc:
            await service.upload_document("C1", DocumentSlot.nic_proof, _pdf())

        assert exc.value.status_code == 409


class TestDeleteAndOpen:
    @pytest.mark.asyncio
    async def test_delete_clears_slot_and_file(self, service, store, files):
        files.write("C1/vat_proof-1.pdf", b"%PDF")
        store.add("C1", vat_proof="/uploads/documents/C1/vat_proof-1.pdf")

        await service.delete_document("C1", DocumentSlot.vat_proof)

        assert store.path("C1", DocumentSlot.vat_proof) is None
        assert not files.exists("C1/vat_proof-1.pdf")

    @pytest.mark.asyncio
    async def test_delete_empty_slot(self, service, store):
        store.add("C1")

        with pytest.raises(AppError) as exc:
            await service.delete_document("C1", DocumentSlot.vat_proof)

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_open_returns_bytes_type_and_download_name(self, service, store, files):
        files.write("C1/nic_proof-1.pdf", b"%PDF-nic")
        store.add("C1", name="Ada", nic_proof="/uploads/documents/C1/nic_proof-1.pdf")

        data, content_type, filename = await service.open_document("C1", DocumentSlot.nic_proof)

        assert data == b"%PDF-nic"
        assert content_type == "application/pdf"
        assert filename == "Ada - NIC Proof.pdf"

    @pytest.mark.asyncio
    async def test_open_follows_legacy_path(self, service, store, files):
        files.write("C1/dob_proof-1.png", b"\x89PNG")
        store.add("C1", dob_proof="/documents/C1/dob_proof-1.png")

        data, content_type, _ = await service.open_document("C1", DocumentSlot.dob_proof)

        assert data == b"\x89PNG"
        assert content_type == "image/png"

    @pytest.mark.asyncio
    async def test_open_missing_file(self, service, store):
        store.add("C1", nic_proof="/uploads/documents/C1/nic_proof-1.pdf")

        with pytest.raises(AppError) as exc:
            await service.open_document("C1", DocumentSlot.nic_proof)

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_open_malformed_reference(self, service, store):
        store.add("C1", nic_proof="nic.pdf")

        with pytest.raises(AppError) as exc:
            await service.open_document("C1", DocumentSlot.nic_proof)

        assert exc.value.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_when_client_vanishes_mid_request(self, service, store, files, monkeypatch):
        files.write("C1/vat_proof-1.pdf", b"%PDF")
        store.add("C1", vat_proof="/uploads/documents/C1/vat_proof-1.pdf")

        async def gone(client_id, slots):
            return False

        monkeypatch.setattr(store, "set", gone)

        with pytest.raises(AppError) as exc:
            await service.delete_document("C1", DocumentSlot.vat_proof)

        assert exc.value.status_code == 404


class TestUpdateClientDocuments:
    @pytest.mark.asyncio
    async def test_replaces_several_slots_and_fires_trigger_once(
        self, service, store, files, trigger
    ):
        files.write("C1/nic_proof-old.pdf", b"old nic")
        store.add(
            "C1",
            nic_proof="/uploads/documents/C1/nic_proof-old.pdf",
            vat_proof="/uploads/documents/C1/vat_proof-keep.pdf",
        )

        res = await service.update_client_documents(
            "C1",
            {DocumentSlot.nic_proof: _pdf(), DocumentSlot.dob_proof: _pdf("dob.png", b"\x89PNG")},
        )

        assert res.id == "C1"
        assert set(res.documents) == {DocumentSlot.nic_proof, DocumentSlot.dob_proof}
        assert store.path("C1", DocumentSlot.nic_proof) == res.documents[DocumentSlot.nic_proof].documentUrl
        assert store.path("C1", DocumentSlot.dob_proof) == res.documents[DocumentSlot.dob_proof].documentUrl
        assert res.documents[DocumentSlot.dob_proof].fileType == "image/png"
        assert store.path("C1", DocumentSlot.vat_proof) == "/uploads/documents/C1/vat_proof-keep.pdf"
        assert not files.exists("C1/nic_proof-old.pdf")
        assert trigger.reasons == ["update:C1"]

    @pytest.mark.asyncio
    async def test_bad_file_leaves_slots_and_disk_untouched(self, service, store, files, trigger):
        files.write("C1/nic_proof-old.pdf", b"old nic")
        store.add("C1", nic_proof="/uploads/documents/C1/nic_proof-old.pdf")

        with pytest.raises(AppError) as exc:
            await service.update_client_documents(
                "C1", {DocumentSlot.nic_proof: _pdf(), DocumentSlot.vat_proof: _pdf("vat.exe")}
            )

        assert exc.value.status_code == 400
        assert store.path("C1", DocumentSlot.nic_proof) == "/uploads/documents/C1/nic_proof-old.pdf"
        assert files.readdir("C1") == ["nic_proof-old.pdf"]
        assert trigger.reasons == []

    @pytest.mark.asyncio
    async def test_unknown_client_and_empty_update(self, service, store):
        store.add("C1")

        with pytest.raises(AppError) as missing:
            await service.update_client_documents("C404", {DocumentSlot.nic_proof: _pdf()})
        with pytest.raises(AppError) as empty:
            await service.update_client_documents("C1", {})

        assert missing.value.status_code == 404
        assert empty.value.status_code == 400


class TestDeleteClient:
    @pytest.mark.asyncio
    async def test_removes_files_namespace_and_record(self, service, store, files):
        files.write("C1/nic_proof-1.pdf", b"%PDF")
        files.write("C1/stray.pdf", b"%PDF")
        files.write("temp-9/dob_proof-1.pdf", b"%PDF")
        files.write("C2/vat_proof-1.pdf", b"%PDF")
        store.add(
            "C1",
            nic_proof="/documents/C1/nic_proof-1.pdf",
            dob_proof="/uploads/documents/temp-9/dob_proof-1.pdf",
            vat_proof="/uploads/documents/C2/vat_proof-1.pdf",
        )
        store.add("C2", vat_proof="/uploads/documents/C2/vat_proof-1.pdf")

        await service.delete_client("C1")

        assert "C1" not in store.records
        assert not files.exists("C1")
        assert not files.exists("temp-9/dob_proof-1.pdf")
        assert files.exists("C2/vat_proof-1.pdf")

    @pytest.mark.asyncio
    async def test_unknown_client(self, service):
        with pytest.raises(AppError) as exc:
            await service.delete_client("C404")

        assert exc.value.status_code == 404

    @pytest.mark.asyncio
    async def test_locked_client_is_not_deleted(self, service, store, locks):
        store.add("C1")
        locks.busy.add("C1")

        with pytest.raises(AppError) as exc:
            await service.delete_client("C1")

        assert exc.value.status_code == 409
        assert "C1" in store.records
