"""
galaxy/store.py -- SQLAlchemy-backed persistence for locations and empires.

Uses SQLAlchemy Core (not ORM) so the dataclasses in galaxy/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. GalaxyStore is the repository; the
_row_to_* functions are the mappers. Route handlers never touch SQL.

Integrity:
  empires.location_id is a foreign key to locations.id. SQLite only enforces
  it with PRAGMA foreign_keys=ON, set per connection below. Violations raise
  sqlalchemy.exc.IntegrityError:
    - create/update an empire with an unknown location_id
    - delete a location that still seats an empire

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = GalaxyStore("sqlite:///starlane.db")
    loc_id = store.create_location(Location(star_system="Sol", area="Earth orbit"))
    store.create_empire(Empire(name="Terran Union", slogan="Together", location_id=loc_id))
    store.close()
"""

from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine

from galaxy.models import Empire, Location

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_locations = Table(
    "locations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("star_system", String(100), nullable=False),
    Column("area", String(100), nullable=False),
)

_empires = Table(
    "empires",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("slogan", String(100), nullable=False),
    Column("location_id", Integer, ForeignKey("locations.id"), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
)


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL mode and foreign key enforcement on every new connection."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class GalaxyStore:
    """Repository for Location and Empire entities."""

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by the health endpoint."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def create_location(self, location: Location) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                _locations.insert().values(star_system=location.star_system, area=location.area)
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_location(self, location_id: int) -> Optional[Location]:
        with self.engine.connect() as conn:
            row = conn.execute(_locations.select().where(_locations.c.id == location_id)).fetchone()
        return _row_to_location(row) if row is not None else None

    def list_locations(self) -> list[Location]:
        with self.engine.connect() as conn:
            rows = conn.execute(_locations.select().order_by(_locations.c.id)).fetchall()
        return [_row_to_location(r) for r in rows]

    def update_location(self, location_id: int, location: Location) -> Optional[Location]:
        """Replace all fields of a location. Returns the updated record, or None if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _locations.update()
                .where(_locations.c.id == location_id)
                .values(star_system=location.star_system, area=location.area)
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_location(location_id)

    def delete_location(self, location_id: int) -> bool:
        """Delete a location. Returns False if not found.

        Raises IntegrityError if an empire is still seated there.
        """
        with self.engine.connect() as conn:
            result = conn.execute(_locations.delete().where(_locations.c.id == location_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Empires
    # ------------------------------------------------------------------

    def create_empire(self, empire: Empire) -> int:
        """Insert an empire. Raises IntegrityError if location_id does not exist."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _empires.insert().values(
                    name=empire.name,
                    slogan=empire.slogan,
                    location_id=empire.location_id,
                    description=empire.description,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_empire(self, empire_id: int) -> Optional[Empire]:
        with self.engine.connect() as conn:
            row = conn.execute(_empires.select().where(_empires.c.id == empire_id)).fetchone()
        return _row_to_empire(row) if row is not None else None

    def list_empires(self) -> list[Empire]:
        with self.engine.connect() as conn:
            rows = conn.execute(_empires.select().order_by(_empires.c.id)).fetchall()
        return [_row_to_empire(r) for r in rows]

    def update_empire(self, empire_id: int, empire: Empire) -> Optional[Empire]:
        """Replace all fields of an empire. Returns the updated record, or None if not found."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _empires.update()
                .where(_empires.c.id == empire_id)
                .values(
                    name=empire.name,
                    slogan=empire.slogan,
                    location_id=empire.location_id,
                    description=empire.description,
                )
            )
            conn.commit()
        if result.rowcount == 0:
            return None
        return self.get_empire(empire_id)

    def delete_empire(self, empire_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_empires.delete().where(_empires.c.id == empire_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_location(row) -> Location:
    return Location(id=row.id, star_system=row.star_system, area=row.area)


def _row_to_empire(row) -> Empire:
    return Empire(
        id=row.id,
        name=row.name,
        slogan=row.slogan,
        location_id=row.location_id,
        description=row.description,
    )
