"""Interaction model type definitions (likes, visits, blocks, rejections)."""

from datetime import datetime
from typing import TypedDict


class Like(TypedDict):
    """likes table row representation."""

    id: int
    liker_id: int
    liked_id: int
    created_at: datetime


class Visit(TypedDict):
    """visits table row representation."""

    id: int
    visitor_id: int
    visited_id: int
    visited_at: datetime


class Block(TypedDict):
    """blocks table row representation."""

    id: int
    blocker_id: int
    blocked_id: int
    created_at: datetime


class Rejection(TypedDict):
    """rejections table row representation (profiles passed while browsing)."""

    id: int
    rejecter_id: int
    rejected_id: int
    created_at: datetime
