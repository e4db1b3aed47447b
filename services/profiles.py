# services/profiles.py

from datetime import datetime, timezone
from typing import Optional

from core.blob_store import BlobStore
from core.errors import NotFound
from core.identity import locate_profile, require_role
from core.logging_config import get_logger
from core.roles import PROFILE_COLLECTIONS
from core.store import Document, DocumentStore
from core.utils import sanitize, slugify
from models.identity import Identity

log = get_logger("profiles")


class ProfileService:
    def __init__(self, store: DocumentStore, blobs: BlobStore):
        self.store = store
        self.blobs = blobs

    async def _own_document(self, identity: Identity) -> Document:
        role = require_role(identity)
        doc = await locate_profile(self.store, PROFILE_COLLECTIONS[role], identity.id, identity.email)
        if doc is None:
            raise NotFound("Profile not found")
        return doc

    # ============================================================
    # Name / email / picture URL
    # ============================================================
    async def update_profile(
        self,
        identity: Identity,
        name: Optional[str] = None,
        email: Optional[str] = None,
        profile_picture_url: Optional[str] = None,
    ) -> dict:
        doc = await self._own_document(identity)

        fields = sanitize({
            "fullName": name,
            "email": email,
            "profilePictureUrl": profile_picture_url,
        })
        updates = {k: v for k, v in fields.items() if v is not None}
        if not updates:
            return {"success": False, "message": "Nothing to update"}

        await self.store.update(PROFILE_COLLECTIONS[identity.role], doc["id"], updates)
        log.info(f"Profile {doc['id']} updated: {sorted(updates)}")
        return {"success": True, "updated": sorted(updates)}

    # ============================================================
    # Profile picture upload
    # ============================================================
    async def update_profile_picture(self, identity: Identity, image_data: str) -> dict:
        doc = await self._own_document(identity)

        slug = slugify(doc.get("fullName") or doc.get("name") or (identity.email or "").split("@")[0])
        ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        result = await self.blobs.upload(
            image_data,
            folder_path=f"hms/profiles/{identity.role.value}/{slug}",
            public_id=f"profile_{ms}",
        )
        url = result["secure_url"]

        updates = {"profilePictureUrl": url}
        if not doc.get("uid"):
            updates["uid"] = identity.id

        await self.store.update(PROFILE_COLLECTIONS[identity.role], doc["id"], updates)
        log.info(f"Profile picture updated for {doc['id']}")
        return {"success": True, "profilePictureUrl": url}
