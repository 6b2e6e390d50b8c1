"""
Barangay reference data models

Streets are stored as a tagged variant: a plain named street or a street
with coordinates. Raw values coming from clients or older documents are
resolved once by parse_street() and never re-inspected downstream.
"""

import json
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator


class NamedStreet(BaseModel):
    """Street known only by name"""
    kind: Literal["named"] = "named"
    name: str = Field(..., min_length=1)

    @property
    def coordinates(self) -> Optional[tuple]:
        return None


class LocatedStreet(BaseModel):
    """Street with a pin-point coordinate"""
    kind: Literal["located"] = "located"
    name: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)

    @property
    def coordinates(self) -> Optional[tuple]:
        return (self.lat, self.lng)


Street = Annotated[Union[NamedStreet, LocatedStreet], Field(discriminator="kind")]


def parse_street(raw: Any) -> Union[NamedStreet, LocatedStreet]:
    """
    Resolve a raw street value into its tagged form.

    Accepts a plain name, a JSON-encoded object, a legacy dict without
    a "kind" tag, or an already tagged dict/model.
    """
    if isinstance(raw, (NamedStreet, LocatedStreet)):
        return raw

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ValueError("Street name is empty")
        try:
            decoded = json.loads(text)
        except ValueError:
            return NamedStreet(name=text)
        if not isinstance(decoded, dict):
            return NamedStreet(name=text)
        raw = decoded

    if isinstance(raw, dict):
        kind = raw.get("kind")
        if kind == "located" or (kind is None and raw.get("lat") is not None and raw.get("lng") is not None):
            return LocatedStreet(name=raw.get("name", ""), lat=raw["lat"], lng=raw["lng"])
        return NamedStreet(name=raw.get("name", ""))

    raise ValueError(f"Unsupported street value: {raw!r}")


class Barangay(BaseModel):
    """Barangay document"""
    id: Optional[str] = None
    name: str
    admin_ids: List[str] = []
    streets: List[Street] = []
    pollution_types: List[str] = []
    lat: Optional[float] = None
    lng: Optional[float] = None
    boundary: Optional[List[List[float]]] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @field_validator("streets", mode="before")
    @classmethod
    def _resolve_streets(cls, value):
        return [parse_street(raw) for raw in value or []]

    def find_street(self, name: str) -> Optional[Union[NamedStreet, LocatedStreet]]:
        for street in self.streets:
            if street.name == name:
                return street
        return None


class BarangayCreateRequest(BaseModel):
    """Request model for creating a barangay"""
    name: str = Field(..., min_length=1)
    admin_id: Optional[str] = None
    streets: List[Any] = []
    pollution_types: List[str] = []
    lat: Optional[float] = None
    lng: Optional[float] = None
    boundary: Optional[List[List[float]]] = None


class StreetRequest(BaseModel):
    """Street payload; either a name or an object with coordinates"""
    street: Any


class PollutionTypeRequest(BaseModel):
    type: str = Field(..., min_length=1)


class AdminAssignmentRequest(BaseModel):
    uid: str = Field(..., min_length=1)
