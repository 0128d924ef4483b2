# (c) Copyright Datacraft, 2026
"""Userset rule endpoints."""
import logging

from fastapi import APIRouter, Depends

from rebac_server import schema
from rebac_server.services.access import AccessService
from .deps import get_access_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/usersets", tags=["usersets"])


@router.get("", response_model=schema.UsersetsResponse)
async def get_usersets(
	service: AccessService = Depends(get_access_service),
) -> schema.UsersetsResponse:
	"""Current flattened rule table."""
	rules = service.rules
	return schema.UsersetsResponse(version=rules.version, rules=rules.as_dict())


@router.put("", response_model=schema.UsersetsResponse)
async def replace_usersets(
	request: schema.UsersetsRequest,
	service: AccessService = Depends(get_access_service),
) -> schema.UsersetsResponse:
	"""Replace the whole rule table."""
	rules = service.reload_rules(request.usersets)
	return schema.UsersetsResponse(version=rules.version, rules=rules.as_dict())
