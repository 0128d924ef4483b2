# (c) Copyright Datacraft, 2026
"""Relationship tuple endpoints."""
import logging

from fastapi import APIRouter, Depends

from rebac_server import schema
from rebac_server.services.access import AccessService
from .deps import get_access_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["tuples"])


@router.post("/tuples", response_model=schema.TupleResponse)
async def write_tuple(
	request: schema.TupleRequest,
	service: AccessService = Depends(get_access_service),
) -> schema.TupleResponse:
	"""Create a relationship; writing an existing one changes nothing."""
	relation_tuple, created = await service.writer.write_tuple(request.tuple)
	return schema.TupleResponse(tuple=str(relation_tuple), changed=created)


@router.delete("/tuples", response_model=schema.TupleResponse)
async def delete_tuple(
	request: schema.TupleRequest,
	service: AccessService = Depends(get_access_service),
) -> schema.TupleResponse:
	relation_tuple, deleted = await service.writer.delete_tuple(request.tuple)
	return schema.TupleResponse(tuple=str(relation_tuple), changed=deleted)


@router.post("/tuples/import", response_model=schema.ImportResponse)
async def import_tuples(
	request: schema.ImportRequest,
	service: AccessService = Depends(get_access_service),
) -> schema.ImportResponse:
	"""Apply tuples one by one; malformed lines are reported, not fatal."""
	report = await service.importer.import_lines(request.lines)
	return schema.ImportResponse.model_validate(report)


@router.delete("/principals/{principal_id}", response_model=schema.DeleteNodeResponse)
async def delete_principal(
	principal_id: int,
	service: AccessService = Depends(get_access_service),
) -> schema.DeleteNodeResponse:
	removed = await service.writer.delete_principal(principal_id)
	return schema.DeleteNodeResponse(removed=removed)


@router.delete("/resources/{namespace}/{resource_id}", response_model=schema.DeleteNodeResponse)
async def delete_resource(
	namespace: str,
	resource_id: int,
	service: AccessService = Depends(get_access_service),
) -> schema.DeleteNodeResponse:
	removed = await service.writer.delete_resource(namespace, resource_id)
	return schema.DeleteNodeResponse(removed=removed)
