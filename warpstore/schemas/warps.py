from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from warpstore.models.enums import WarpType
from warpstore.warp.model import WELCOME_MESSAGE_MAX_LENGTH, EulerDirection, Vector3, Warp


class WarpResponse(BaseModel):
    """Read model of a warp. Invitations are left out unless the caller may modify the warp."""
    id: Optional[int] = None
    name: str
    creator: str
    world: str
    position: Vector3
    rotation: EulerDirection
    type: WarpType
    invited_players: Optional[List[str]] = None
    invited_groups: Optional[List[str]] = None
    creation_date: datetime
    visits: int
    welcome_message: str

    @classmethod
    def from_warp(cls, warp: Warp, include_invitations: bool = False) -> "WarpResponse":
        return cls(
            id=warp.id,
            name=warp.name,
            creator=warp.creator,
            world=warp.world_identifier,
            position=warp.position,
            rotation=warp.rotation,
            type=warp.type,
            invited_players=sorted(warp.invited_players) if include_invitations else None,
            invited_groups=sorted(warp.invited_groups) if include_invitations else None,
            creation_date=warp.creation_date,
            visits=warp.visits,
            welcome_message=warp.welcome_message,
        )


class WarpList(BaseModel):
    """List of warps"""
    total: int
    items: List[WarpResponse]


class WarpInfoResponse(BaseModel):
    name: str
    text: str


class WelcomeMessageUpdate(BaseModel):
    welcome_message: str = Field(..., max_length=WELCOME_MESSAGE_MAX_LENGTH)


class VisitResponse(BaseModel):
    warp: WarpResponse
    welcome_text: str


class StatusMessage(BaseModel):
    message: str
    warp: WarpResponse
