# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "clientdocs"

CLIENTS: Final[str] = f"{ROOT}:clients"
CLIENT_INDEX: Final[str] = f"{ROOT}:client-index"  # zset of client ids scored by creation time
LOCKS: Final[str] = f"{ROOT}:locks"  # per-namespace advisory locks
