from fastapi import APIRouter, Depends, HTTPException, Request

from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse, RoomSummary
from signaling import SignalingRelay

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


def get_relay(request: Request) -> SignalingRelay:
    return request.app.state.relay


@rooms_router.get("/", response_model=list[RoomSummary])
async def list_rooms(relay: SignalingRelay = Depends(get_relay)):
    """List every registered room with its current member count.

    Rooms stay registered after their last member leaves unless empty-room pruning
    is enabled, so a count of zero is normal.
    """
    rooms = []
    for room_id in relay.registry.room_ids():
        members = await relay.registry.members_of(room_id)
        rooms.append(RoomSummary(room_id=room_id, member_count=len(members)))
    logger.debug(f"Listing {len(rooms)} rooms")
    return rooms


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, relay: SignalingRelay = Depends(get_relay)):
    if room_id not in relay.registry:
        logger.info(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    members = await relay.registry.members_of(room_id)
    logger.debug(f"Room details retrieved for {room_id}: {len(members)} members")
    return RoomDetailsResponse(
        room_id=room_id,
        member_count=len(members),
        member_ids=[member.id for member in members],
    )
