"""
api/routes/v1/locations.py -- Star-system location CRUD.

Role matrix (each route declares exactly one minimum role):
  POST   /locations                  WRITER
  GET    /locations                  READER
  GET    /locations/{location_id}    READER
  PUT    /locations/{location_id}    EDITOR
  DELETE /locations/{location_id}    ADMIN
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api.models import LocationResponse, LocationUpsert
from auth.dependencies import require_admin, require_editor, require_reader, require_writer
from auth.models import Principal
from galaxy.store import GalaxyStore

logger = logging.getLogger("starlane.api")

router = APIRouter()

_NOT_FOUND = {"code": "not_found", "message": "Location not found."}


@router.post("/locations", response_model=LocationResponse, status_code=201)
async def create_location(
    request: Request,
    body: LocationUpsert,
    principal: Principal = Depends(require_writer),
) -> LocationResponse:
    galaxy: GalaxyStore = request.app.state.galaxy
    location_id = galaxy.create_location(body.to_location())
    logger.info("Location %d created by %s", location_id, principal.identifier)
    return LocationResponse.from_location(galaxy.get_location(location_id))


@router.get("/locations", response_model=list[LocationResponse])
async def list_locations(
    request: Request,
    principal: Principal = Depends(require_reader),
) -> list[LocationResponse]:
    galaxy: GalaxyStore = request.app.state.galaxy
    return [LocationResponse.from_location(loc) for loc in galaxy.list_locations()]


@router.get("/locations/{location_id}", response_model=LocationResponse)
async def get_location(
    request: Request,
    location_id: int,
    principal: Principal = Depends(require_reader),
) -> LocationResponse:
    galaxy: GalaxyStore = request.app.state.galaxy
    location = galaxy.get_location(location_id)
    if location is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return LocationResponse.from_location(location)


@router.put("/locations/{location_id}", response_model=LocationResponse)
async def update_location(
    request: Request,
    location_id: int,
    body: LocationUpsert,
    principal: Principal = Depends(require_editor),
) -> LocationResponse:
    galaxy: GalaxyStore = request.app.state.galaxy
    updated = galaxy.update_location(location_id, body.to_location())
    if updated is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return LocationResponse.from_location(updated)


@router.delete("/locations/{location_id}", status_code=204)
async def delete_location(
    request: Request,
    location_id: int,
    principal: Principal = Depends(require_admin),
) -> Response:
    galaxy: GalaxyStore = request.app.state.galaxy
    try:
        deleted = galaxy.delete_location(location_id)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "location_in_use", "message": "An empire is still seated at this location."},
        ) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    logger.info("Location %d deleted by %s", location_id, principal.identifier)
    return Response(status_code=204)
