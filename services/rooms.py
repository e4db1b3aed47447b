# services/rooms.py

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Union

from core import store as collections
from core.blob_store import BlobStore
from core.config import settings
from core.errors import Forbidden, HostelError, InvalidInput, NotFound
from core.identity import locate_profile, require_role
from core.logging_config import get_logger
from core.permission_helpers import require_permission
from core.store import Document, DocumentStore
from models.enums import Role
from models.identity import Identity
from services.role_scope import Scope, scope_for

log = get_logger("rooms")

# Older room documents kept their URLs under other names
LEGACY_IMAGE_FIELDS = ("photos", "imageUrls")


def room_images_of(room: Document) -> List[str]:
    images: List[str] = []
    for field in ("images",) + LEGACY_IMAGE_FIELDS:
        for url in room.get(field) or []:
            if url and url not in images:
                images.append(url)
    return images


def with_images(room: Document) -> Document:
    out = {k: v for k, v in room.items() if k not in LEGACY_IMAGE_FIELDS}
    out["images"] = room_images_of(room)
    return out


def room_admitted(scope: Scope, room: Document) -> bool:
    if scope.floor_ids is not None:
        return scope.admits_floor(room.get("floorId"))
    if scope.hostel_id is not None:
        return str(room.get("hostelId")) == scope.hostel_id
    return True


def student_room_id(student: Optional[Document]) -> Optional[str]:
    details = (student or {}).get("hostelDetails") or {}
    room = details.get("room_id") or details.get("roomId")
    return str(room) if room else None


class RoomService:
    def __init__(self, store: DocumentStore, blobs: BlobStore):
        self.store = store
        self.blobs = blobs

    # ============================================================
    # List rooms in scope
    # ============================================================
    async def list_rooms(self, identity: Identity, floor_id: Optional[str] = None) -> List[dict]:
        role = require_role(identity)
        require_permission(identity, "rooms:read")
        scope = scope_for(identity)

        if role == Role.student:
            student = await locate_profile(self.store, collections.STUDENTS, identity.id, identity.email)
            room_id = student_room_id(student)
            if not room_id:
                return []
            room = await self.store.get(collections.ROOMS, room_id)
            return [with_images(room)] if room else []

        if floor_id and not scope.admits_floor(floor_id):
            raise Forbidden(f"Floor {floor_id} is outside your assignment")

        where = []
        if floor_id:
            where.append(("floorId", "==", str(floor_id)))
        elif scope.floor_ids is not None:
            where.append(("floorId", "in", sorted(scope.floor_ids)))
        if scope.hostel_id is not None:
            where.append(("hostelId", "==", scope.hostel_id))

        rooms = await self.store.query(collections.ROOMS, where)
        return [with_images(r) for r in rooms if room_admitted(scope, r)]

    # ============================================================
    # Images of one room
    # ============================================================
    async def room_images(self, identity: Identity, room_id: str) -> dict:
        role = require_role(identity)
        require_permission(identity, "rooms:read")

        if role == Role.student:
            student = await locate_profile(self.store, collections.STUDENTS, identity.id, identity.email)
            if student_room_id(student) != room_id:
                raise Forbidden("You can only view your own room")
            room = await self.store.get(collections.ROOMS, room_id)
            images = room_images_of(room) if room else []
            if not images:
                images = list((student or {}).get("roomBucket") or [])
            return {"roomId": room_id, "images": images}

        scope = scope_for(identity)
        room = await self.store.get(collections.ROOMS, room_id)
        if room is None:
            raise NotFound(f"Room {room_id} not found")
        if not room_admitted(scope, room):
            raise Forbidden(f"Room {room_id} is outside your assignment")
        return {"roomId": room_id, "images": room_images_of(room)}

    # ============================================================
    # Upload a room image
    # ============================================================
    async def upload_room_image(
        self,
        identity: Identity,
        room_id: str,
        hostel_id: Optional[str],
        floor_id: Optional[str],
        data: Union[bytes, str],
        content_type: Optional[str] = None,
    ) -> dict:
        require_role(identity)
        require_permission(identity, "rooms:write")
        scope = scope_for(identity)

        if not hostel_id:
            raise InvalidInput("Missing required field: hostelId")
        if not floor_id:
            raise InvalidInput("Missing required field: floorId")
        if not content_type or not content_type.startswith("image/"):
            raise InvalidInput("Only image uploads are allowed")
        if isinstance(data, (bytes, bytearray)) and len(data) > settings.MAX_IMAGE_BYTES:
            raise InvalidInput(f"Image exceeds {settings.MAX_IMAGE_BYTES} bytes")

        room = await self.store.get(collections.ROOMS, room_id)
        target = room or {"hostelId": hostel_id, "floorId": floor_id}
        if not room_admitted(scope, target):
            raise Forbidden(f"Room {room_id} is outside your assignment")

        ms = int(datetime.now(timezone.utc).timestamp() * 1000)
        result = await self.blobs.upload(
            data,
            folder_path=f"hms/rooms/{hostel_id}/{floor_id}/{room_id}",
            public_id=f"room_{ms}",
            content_type=content_type,
        )
        url = result["secure_url"]

        if room is None:
            room = await self.store.set(
                collections.ROOMS,
                room_id,
                {
                    "hostelId": hostel_id,
                    "floorId": floor_id,
                    "images": [url],
                    "createdAt": datetime.now(timezone.utc).isoformat(),
                },
            )
        else:
            room = await self.store.array_union(collections.ROOMS, room_id, "images", [url])

        await self._propagate_to_residents(room_id, url)

        log.info(f"Room image uploaded for {room_id} by {identity.id}")
        return {"success": True, "url": url, "roomId": room_id, "images": room_images_of(room)}

    async def _propagate_to_residents(self, room_id: str, url: str) -> None:
        """Copies the URL into each resident's roomBucket. Failures are logged only."""
        try:
            residents = await self.store.query(
                collections.STUDENTS, [("hostelDetails.room_id", "==", room_id)]
            )
        except HostelError as e:
            log.warning(f"Could not load residents of {room_id}: {e.detail}")
            return

        results = await asyncio.gather(
            *(self.store.array_union(collections.STUDENTS, s["id"], "roomBucket", [url]) for s in residents),
            return_exceptions=True,
        )
        for student, result in zip(residents, results):
            if isinstance(result, Exception):
                log.warning(f"roomBucket update failed for {student.get('id')}: {result}")
