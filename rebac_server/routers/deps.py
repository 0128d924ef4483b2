# (c) Copyright Datacraft, 2026
from fastapi import Request

from rebac_server.services.access import AccessService


def get_access_service(request: Request) -> AccessService:
	"""FastAPI dependency returning the app-wide access service."""
	return request.app.state.access_service
