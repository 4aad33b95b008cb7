from pydantic import BaseModel


class RoomSummary(BaseModel):
    room_id: str
    member_count: int


class RoomDetailsResponse(BaseModel):
    room_id: str
    member_count: int
    member_ids: list[str]
