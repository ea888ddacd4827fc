"""
Rooms Router for WatchParty

Read-only room listing and detail endpoints for status pages.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Request
from watchparty.services.room_service import RoomRegistry
from watchparty.schemas.room import RoomSummaryResponse, RoomDetailResponse
from watchparty.exceptions import RoomNotFoundException

router = APIRouter(prefix="/api/rooms", tags=["Rooms"])


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


@router.get("", response_model=list[RoomSummaryResponse])
async def list_rooms(registry: Annotated[RoomRegistry, Depends(get_registry)]):
    """All active rooms"""
    return [RoomSummaryResponse.model_validate(room) for room in registry.list_rooms()]


@router.get("/{room_id}", response_model=RoomDetailResponse)
async def get_room(
    room_id: str,
    registry: Annotated[RoomRegistry, Depends(get_registry)],
):
    """
    Room detail with its members.

    Raises:
        RoomNotFoundException: Unknown room id
    """
    room = registry.get_room(room_id)
    if not room:
        raise RoomNotFoundException(room_id=room_id)
    return RoomDetailResponse.model_validate(room)
