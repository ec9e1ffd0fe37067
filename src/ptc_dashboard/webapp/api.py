import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, UploadFile

from ptc_dashboard import dashboard
from ptc_dashboard.auth import require_admin, resolve_identity
from ptc_dashboard.errors import EmptyInputError
from ptc_dashboard.file_io import decode_upload
from ptc_dashboard.managers import DbManager
from ptc_dashboard.models import Identity, Role
from ptc_dashboard.reconcile import import_csv_text, sync_sheet
from ptc_dashboard.status import StatusOverlay
from ptc_dashboard.webapp import __version__

logger = logging.getLogger("ptc_dashboard.webapp")

api = APIRouter(prefix="/api", tags=["api"])


# -----------------------
# Dependencies
# -----------------------
def get_db(request: Request):
	with DbManager(request.app.state.db_path) as db:
		yield db


def session_identity(request: Request) -> Optional[Identity]:
	user = request.session.get("user")
	if not user:
		return None
	return Identity(email=user["email"], role=Role(user["role"]))


def current_identity(request: Request) -> Identity:
	identity = session_identity(request)
	if identity is None:
		raise HTTPException(status_code=401, detail="Not authenticated")
	return identity


def admin_identity(identity: Identity = Depends(current_identity)) -> Identity:
	return require_admin(identity)


# -----------------------
# Session
# -----------------------
@api.get("/health")
def health():
	return {"status": "ok"}


@api.get("/version")
def api_version():
	return {"version": __version__}


@api.post("/login")
def login(request: Request, payload: Optional[dict] = Body(None)):
	payload = payload or {}
	identity = resolve_identity(payload.get("email"), request.app.state.admin_email)
	request.session["user"] = identity.to_dict()
	logger.info(f"Login: {identity.email} ({identity.role.value})")
	return identity.to_dict()


@api.post("/logout")
def logout(request: Request):
	request.session.clear()
	return {"ok": True}


@api.get("/me")
def me(identity: Identity = Depends(current_identity)):
	return identity.to_dict()


# -----------------------
# Imports (admin only)
# -----------------------
@api.post("/sync")
def sync(
	request: Request,
	identity: Identity = Depends(admin_identity),
	db: DbManager = Depends(get_db),
):
	result = sync_sheet(db, request.app.state.fetcher)
	logger.info(f"Sheet sync by {identity.email}: {result.to_dict()}")
	return result.to_dict()


@api.post("/upload")
def upload(
	csv: Optional[UploadFile] = File(None),
	identity: Identity = Depends(admin_identity),
	db: DbManager = Depends(get_db),
):
	if csv is None:
		raise EmptyInputError("No file uploaded")
	text = decode_upload(csv.file.read())
	result = import_csv_text(db, text)
	logger.info(f"CSV upload {csv.filename!r} by {identity.email}: {result.to_dict()}")
	return result.to_dict()


# -----------------------
# Signups
# -----------------------
@api.get("/signups")
def api_get_signups(
	grade: Optional[str] = None,
	identity: Identity = Depends(current_identity),
	db: DbManager = Depends(get_db),
):
	return dashboard.list_signups(db, grade or None)


@api.get("/summary")
def api_get_summary(
	grade: Optional[str] = None,
	identity: Identity = Depends(current_identity),
	db: DbManager = Depends(get_db),
):
	return dashboard.get_summary(db, grade or None)


@api.put("/signups/status")
def api_set_status(
	payload: Optional[dict] = Body(None),
	identity: Identity = Depends(admin_identity),
	db: DbManager = Depends(get_db),
):
	payload = payload or {}
	StatusOverlay(db).set_status(identity, payload.get("slot_key"), payload.get("status"))
	return {"ok": True}
