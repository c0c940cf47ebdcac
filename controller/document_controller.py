# controller/document_controller.py
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from starlette.datastructures import FormData, UploadFile as StarletteUploadFile
from controller.controller_dependencies import (
    enforce_max_upload_size,
    get_document_service,
    rate_limit,
    read_capped,
)
from core.entities import IncomingDocument
from model.api import CreateClientResponse, UpdateDocumentsResponse, UploadDocumentResponse
from model.client import DocumentSlot
from service.document_service import DocumentService
from util.constants import InternalURIs

document_router = APIRouter(dependencies=[Depends(rate_limit)])


async def _form_documents(form: FormData) -> dict[DocumentSlot, IncomingDocument]:
    # One optional file part per slot, named after the slot.
    documents: dict[DocumentSlot, IncomingDocument] = {}
    for slot in DocumentSlot:
        part = form.get(slot.value)
        if isinstance(part, StarletteUploadFile):
            documents[slot] = IncomingDocument(
                filename=part.filename or "", data=await read_capped(part)
            )
    return documents


@document_router.post(
    InternalURIs.CREATE_CLIENT_WITH_DOCUMENTS,
    response_model=CreateClientResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_client_with_documents(
    request: Request,
    service: DocumentService = Depends(get_document_service),
) -> CreateClientResponse:
    form = await request.form()
    documents = await _form_documents(form)
    name = form.get("clientName")
    client_id = form.get("clientId")
    return await service.create_client_with_documents(
        name=name if isinstance(name, str) and name else None,
        documents=documents,
        client_id=client_id if isinstance(client_id, str) and client_id else None,
    )


@document_router.put(
    InternalURIs.UPDATE_CLIENT_WITH_DOCUMENTS, response_model=UpdateDocumentsResponse
)
async def update_client_documents(
    client_id: str,
    request: Request,
    service: DocumentService = Depends(get_document_service),
) -> UpdateDocumentsResponse:
    documents = await _form_documents(await request.form())
    return await service.update_client_documents(client_id, documents)


@document_router.delete(InternalURIs.CLIENT)
async def delete_client(
    client_id: str,
    service: DocumentService = Depends(get_document_service),
):
    await service.delete_client(client_id)
    return {"ok": True}

@document_router.post(
    InternalURIs.CLIENT_DOCUMENTS,
    response_model=UploadDocumentResponse,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def upload_document(
    client_id: str,
    documentType: DocumentSlot = Form(...),
    document: UploadFile = File(...),
    service: DocumentService = Depends(get_document_service),
) -> UploadDocumentResponse:
    data = await document.read()
    return await service.upload_document(
        client_id, documentType, IncomingDocument(filename=document.filename or "", data=data)
    )


@document_router.delete(InternalURIs.CLIENT_DOCUMENT)
async def delete_document(
    client_id: str,
    slot: DocumentSlot,
    service: DocumentService = Depends(get_document_service),
):
    await service.delete_document(client_id, slot)
    return {"ok": True}


@document_router.get(InternalURIs.CLIENT_DOCUMENT)
async def download_document(
    client_id: str,
    slot: DocumentSlot,
    service: DocumentService = Depends(get_document_service),
) -> Response:
    data, content_type, filename = await service.open_document(client_id, slot)
    return Response(
        content=data,
        media_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
