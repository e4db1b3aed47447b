# core/context.py

from dataclasses import dataclass

from fastapi import Request

from core.blob_store import BlobStore
from core.identity import IdentityResolver
from core.store import DocumentStore


# ============================================================
# Process-wide collaborators, built once in create_app()
# ============================================================
@dataclass
class AppContext:
    store: DocumentStore
    identity: IdentityResolver
    blobs: BlobStore


def build_context() -> AppContext:
    store = DocumentStore()
    return AppContext(
        store=store,
        identity=IdentityResolver(store, client_factory=store.client),
        blobs=BlobStore(),
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency; tests override it with in-memory collaborators."""
    return request.app.state.context
