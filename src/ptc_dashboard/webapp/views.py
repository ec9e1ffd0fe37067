from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ptc_dashboard import constants, dashboard
from ptc_dashboard.managers import DbManager
from ptc_dashboard.webapp import __version__
from .api import get_db, session_identity

views = APIRouter(tags=["views"])
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


@views.get("/", response_class=HTMLResponse)
def dashboard_view(request: Request, grade: Optional[str] = None, db: DbManager = Depends(get_db)):
	identity = session_identity(request)
	context = {
		"request": request,
		"title": "PTC Dashboard",
		"version": __version__,
		"identity": identity,
		"statuses": constants.VALID_STATUSES,
		"grade": grade or "",
		"grades": [],
		"signups": [],
		"summary": None,
	}
	if identity is not None:
		context.update(dashboard.load_dashboard(db, grade or None))
	return templates.TemplateResponse(request, "dashboard.html", context)
