"""
Schema definitions for the API.
This module exports all schemas for easy importing throughout the app.
"""

from warpstore.schemas.warps import (
    WarpResponse, WarpList, WarpInfoResponse, WelcomeMessageUpdate, VisitResponse, StatusMessage
)

__all__ = [
    "WarpResponse",
    "WarpList",
    "WarpInfoResponse",
    "WelcomeMessageUpdate",
    "VisitResponse",
    "StatusMessage",
]
