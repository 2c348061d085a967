from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from typing import Optional


class Venue(BaseModel):
    """A dog-friendly place (park, café, trail) identified by its place id."""

    model_config = ConfigDict(frozen=True)

    place_id: str
    name: str = ""
    address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    place_types: tuple[str, ...] = ()


class DogProfile(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: UUID
    owner_id: UUID
    name: str
    breed: Optional[str] = None
    age: Optional[int] = None
    size: Optional[str] = None  # small / medium / large / extra large
    energy_level: Optional[str] = None  # low / medium / high
    friendliness: Optional[str] = None  # shy / selective / friendly
    trainability: Optional[str] = None  # basic / intermediate / advanced
    exercise_needs: Optional[str] = None  # minimal / moderate / high / very high
    grooming_needs: Optional[str] = None
    special_needs: Optional[str] = None
    is_spayed_neutered: Optional[bool] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    frequented_venues: tuple[Venue, ...] = Field(default_factory=tuple)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
