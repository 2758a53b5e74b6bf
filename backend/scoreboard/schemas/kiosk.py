from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from scoreboard.models.enums import SlideType


class SlideCreate(BaseModel):
    slide_type: SlideType
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_override_seconds: Optional[int] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None


class SlideResponse(BaseModel):
    id: str
    kiosk_config_id: str
    position: int
    slide_type: str
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration_override_seconds: Optional[int] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReorderItem(BaseModel):
    id: str
    position: int


class ReorderRequest(BaseModel):
    slides: List[ReorderItem]
