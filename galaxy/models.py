"""
galaxy/models.py -- Domain dataclasses for the Starlane game world.

Pure data containers. Persistence lives in galaxy/store.py; access control
lives in the routes that call it.

id is None before the record is written to the database.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Location:
    """A named area inside a star system."""

    star_system: str
    area: str
    id: Optional[int] = None


@dataclass
class Empire:
    """A faction seated at one Location.

    location_id must reference an existing Location; the store enforces it.
    """

    name: str
    slogan: str
    location_id: int
    description: str = ""
    id: Optional[int] = None
