"""
api/routes/v1/empires.py -- Empire CRUD.

Role matrix:
  POST   /empires                WRITER
  GET    /empires                READER
  GET    /empires/{empire_id}    READER
  PUT    /empires/{empire_id}    EDITOR
  DELETE /empires/{empire_id}    ADMIN

location_id must name an existing location. It is checked up front so the
client gets a 400 with a clear code instead of a bare integrity failure.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import EmpireResponse, EmpireUpsert
from auth.dependencies import require_admin, require_editor, require_reader, require_writer
from auth.models import Principal
from galaxy.store import GalaxyStore

logger = logging.getLogger("starlane.api")

router = APIRouter()

_NOT_FOUND = {"code": "not_found", "message": "Empire not found."}


def _check_location(galaxy: GalaxyStore, location_id: int) -> None:
    if galaxy.get_location(location_id) is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "unknown_location", "message": f"Location {location_id} does not exist."},
        )


@router.post("/empires", response_model=EmpireResponse, status_code=201)
async def create_empire(
    request: Request,
    body: EmpireUpsert,
    principal: Principal = Depends(require_writer),
) -> EmpireResponse:
    galaxy: GalaxyStore = request.app.state.galaxy
    _check_location(galaxy, body.location_id)
    empire_id = galaxy.create_empire(body.to_empire())
    logger.info("Empire %d created by %s", empire_id, principal.identifier)
    return EmpireResponse.from_empire(galaxy.get_empire(empire_id))


@router.get("/empires", response_model=list[EmpireResponse])
async def list_empires(
    request: Request,
    principal: Principal = Depends(require_reader),
) -> list[EmpireResponse]:
    galaxy: GalaxyStore = request.app.state.galaxy
    return [EmpireResponse.from_empire(e) for e in galaxy.list_empires()]


@router.get("/empires/{empire_id}", response_model=EmpireResponse)
async def get_empire(
    request: Request,
    empire_id: int,
    principal: Principal = Depends(require_reader),
) -> EmpireResponse:
    galaxy: GalaxyStore = request.app.state.galaxy
    empire = galaxy.get_empire(empire_id)
    if empire is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return EmpireResponse.from_empire(empire)


@router.put("/empires/{empire_id}", response_model=EmpireResponse)
async def update_empire(
    request: Request,
    empire_id: int,
    body: EmpireUpsert,
    principal: Principal = Depends(require_editor),
) -> EmpireResponse:
    galaxy: GalaxyStore = request.app.state.galaxy
    if galaxy.get_empire(empire_id) is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    _check_location(galaxy, body.location_id)
    updated = galaxy.update_empire(empire_id, body.to_empire())
    if updated is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return EmpireResponse.from_empire(updated)


@router.delete("/empires/{empire_id}", status_code=204)
async def delete_empire(
    request: Request,
    empire_id: int,
    principal: Principal = Depends(require_admin),
) -> Response:
    galaxy: GalaxyStore = request.app.state.galaxy
    if not galaxy.delete_empire(empire_id):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    logger.info("Empire %d deleted by %s", empire_id, principal.identifier)
    return Response(status_code=204)
