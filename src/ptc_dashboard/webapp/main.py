import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from ptc_dashboard import constants
from ptc_dashboard.errors import (
	AuthorizationError,
	DashboardError,
	EmptyInputError,
	SchemaError,
	UpstreamFetchError,
	ValidationError,
)
from ptc_dashboard.logging_config import configure_root_logger
from ptc_dashboard.managers import DbManager
from ptc_dashboard.sheets import SheetFetcher
from ptc_dashboard.webapp import __version__
from .api import api
from .views import views

logger = logging.getLogger("ptc_dashboard.webapp")

# error class -> HTTP status; first match wins
ERROR_STATUS = [
	(AuthorizationError, 403),
	(UpstreamFetchError, 502),
	(SchemaError, 400),
	(EmptyInputError, 400),
	(ValidationError, 400),
]


def _status_for(exc: DashboardError) -> int:
	for error_cls, status_code in ERROR_STATUS:
		if isinstance(exc, error_cls):
			return status_code
	return 500


async def dashboard_error_handler(request: Request, exc: DashboardError):
	status_code = _status_for(exc)
	logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc}")
	body = {"error": str(exc)}
	if isinstance(exc, SchemaError):
		body.update(missing=exc.missing, found=exc.found)
	return JSONResponse(status_code=status_code, content=body)


def create_app(db_path=None, admin_email=None, fetcher=None, session_secret=None) -> FastAPI:
	"""
	Build the dashboard app around an explicit database path.

	The schema is created on startup if missing; each request opens its own
	DbManager on app.state.db_path.
	"""
	configure_root_logger(log_subdir="webapp")

	app = FastAPI(title="PTC Dashboard", version=__version__)
	app.state.db_path = str(db_path or os.getenv("PTC_DB_PATH") or constants.DEFAULT_DB_PATH)
	app.state.admin_email = admin_email or constants.ADMIN_EMAIL
	app.state.fetcher = fetcher or SheetFetcher()

	app.add_middleware(
		SessionMiddleware,
		secret_key=session_secret or constants.SESSION_SECRET,
		max_age=constants.SESSION_MAX_AGE,
		same_site="lax",
	)
	app.add_exception_handler(DashboardError, dashboard_error_handler)

	with DbManager(app.state.db_path) as db:
		db.init_schema()

	app.include_router(api)
	app.include_router(views)
	return app
