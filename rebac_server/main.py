# (c) Copyright Datacraft, 2026
"""FastAPI application for relationship checks."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from rebac_server.config import Settings, get_settings
from rebac_server.exceptions import ConfigError, StoreError, StoreUnavailable, ValidationError
from rebac_server.routers import check_router, tuples_router, usersets_router
from rebac_server.services.access import AccessService

logger = logging.getLogger(__name__)


def _error_handler(status_code: int):
	async def handler(request: Request, exc: Exception) -> JSONResponse:
		if status_code >= 500:
			logger.error(f"{request.method} {request.url.path} failed: {exc}")
		return JSONResponse(status_code=status_code, content={"detail": str(exc)})
	return handler


def create_app(
	settings: Settings | None = None,
	service: AccessService | None = None,
) -> FastAPI:
	"""Build the app. A prebuilt service skips settings-driven wiring."""
	settings = settings or get_settings()

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		logging.basicConfig(level=settings.log_level.upper())
		access_service = service
		if access_service is None:
			access_service = AccessService.from_settings(settings)
			if settings.seed_path:
				await access_service.seed(settings.seed_path)
		app.state.access_service = access_service
		logger.info(
			f"Relationship server ready ({settings.store_backend.value} store, "
			f"{len(access_service.rules)} userset rules)"
		)
		yield

	app = FastAPI(title="rebac-server", lifespan=lifespan)
	app.include_router(check_router)
	app.include_router(tuples_router)
	app.include_router(usersets_router)

	app.add_exception_handler(ValidationError, _error_handler(422))
	app.add_exception_handler(ConfigError, _error_handler(status.HTTP_400_BAD_REQUEST))
	app.add_exception_handler(StoreUnavailable, _error_handler(status.HTTP_503_SERVICE_UNAVAILABLE))
	app.add_exception_handler(StoreError, _error_handler(status.HTTP_500_INTERNAL_SERVER_ERROR))
	return app
