"""Server-rendered pages behind the authorization gate."""
from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from community_portal.api.deps import get_identity
from community_portal.services.tokens import Identity

router = APIRouter(tags=["pages"])


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(identity: Identity = Depends(get_identity)):
    return (
        "<!doctype html><title>Dashboard</title>"
        f"<p>Signed in as {escape(identity.subject_id)} ({escape(identity.role)})</p>"
    )
