# (c) Copyright Datacraft, 2026
"""Access check endpoint."""
import logging

from fastapi import APIRouter, Depends

from rebac_server import schema
from rebac_server.services.access import AccessService
from .deps import get_access_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["check"])


@router.post("/check", response_model=schema.CheckResponse)
async def check_access(
	request: schema.CheckRequest,
	service: AccessService = Depends(get_access_service),
) -> schema.CheckResponse:
	"""Check whether a principal holds a relation to a resource."""
	result = await service.explain(
		request.principal_id,
		request.resource_id,
		request.namespace,
		request.relation,
	)
	return schema.CheckResponse.model_validate(result)
