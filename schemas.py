"""
Schemas

Each stored Pydantic model here corresponds to a MongoDB collection with the
lowercased class name, e.g. Itinerary -> "itinerary". The *In models are
request bodies.
"""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CalendarType = Literal["google", "ical"]


class Attraction(BaseModel):
    """Shared catalog entry, one per external id."""
    id: str = Field(..., min_length=1, description="External attraction id")
    name: Optional[str] = None
    image: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    url: Optional[str] = None


class SavedAttraction(Attraction):
    """Per-user copy of an attraction."""
    user_id: str


class Itinerary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str
    name: str = Field(..., min_length=1, max_length=200)
    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None
    attractions: List[Attraction] = []
    collaborators: List[str] = []
    public: bool = False
    is_synced: bool = False
    calendar_type: Optional[CalendarType] = None


class Review(BaseModel):
    attraction_id: str = Field(..., min_length=1)
    user_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
    attraction_name: Optional[str] = None
    attraction_address: Optional[str] = None
    attraction_image: Optional[str] = None


# -------------------- Request bodies --------------------
class ItineraryIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200)
    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None
    attractions: List[Attraction] = []


class ItineraryUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    from_: Optional[datetime] = Field(None, alias="from")
    to: Optional[datetime] = None


class CollaboratorIn(BaseModel):
    collaboratorEmail: str = Field(..., min_length=3)


class SyncIn(BaseModel):
    calendarType: CalendarType


class ReviewIn(BaseModel):
    # Required-ness is checked by the review store so the error is ours
    attractionId: Optional[str] = None
    rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=2000)
    attractionName: Optional[str] = None
    attractionAddress: Optional[str] = None
    attractionImage: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=2000)


class ProfileUpdate(BaseModel):
    userName: Optional[str] = Field(None, min_length=1, max_length=80)
    bio: Optional[str] = Field(None, max_length=1000)
    location: Optional[str] = Field(None, max_length=200)
    profilePicture: Optional[str] = None
    visitedPlaces: Optional[List[str]] = None
