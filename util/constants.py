class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    CLIENTS = V1 + "/clients"
    CREATE_CLIENT_WITH_DOCUMENTS = CLIENTS + "/with-documents"
    CLIENT = CLIENTS + "/{client_id}"
    UPDATE_CLIENT_WITH_DOCUMENTS = CLIENT + "/with-documents"
    CLIENT_DOCUMENTS = CLIENT + "/documents"
    CLIENT_DOCUMENT = CLIENT_DOCUMENTS + "/{slot}"
    DOCUMENTS = V1 + "/documents"
    PROMOTE = DOCUMENTS + "/promote"
    SCAN = DOCUMENTS + "/scan"
    REPAIR = DOCUMENTS + "/repair"
    FIX_PATHS = DOCUMENTS + "/fix-paths"


CONTENT_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}

PLACEHOLDER_MARKER = "PLACEHOLDER"
