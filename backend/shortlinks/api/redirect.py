from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from ..config import settings
from ..core.outcomes import IncorrectPassword, InvalidOrUnprotected, NotFound, PasswordRequired, Redirect
from ..core.rate_limit import limiter
from ..database import get_db
from ..schemas.redirect import VerifyPasswordRequest, VerifyPasswordResponse
from ..services import redirect as redirect_service

router = APIRouter()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

PAGE_TEMPLATE = """
<!DOCTYPE html>
<html><head><meta charset="UTF-8"><title>{title}</title></head>
<body style="font-family: Arial; text-align: center; padding: 50px;">
    <h1>{title}</h1>
    <p>{message}</p>
    <a href="/">Go to the home page</a>
</body></html>
"""


def get_404_page() -> str:
    return PAGE_TEMPLATE.format(
        title="404 - Link not found",
        message="The requested short link does not exist."
    )


def get_410_page() -> str:
    return PAGE_TEMPLATE.format(
        title="410 - Link unavailable",
        message="This short link has expired or has been deactivated."
    )


def _request_headers(request: Request) -> dict:
    return {
        "user_agent": request.headers.get("user-agent"),
        "peer_address": request.client.host if request.client else None,
        "forwarded_for": request.headers.get("x-forwarded-for"),
        "referrer": request.headers.get("referer"),
    }


@limiter.limit(settings.RATE_LIMIT_REDIRECT)
def redirect_to_url(
    short_code: str,
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Redirect to the original URL from a short code or alias.

    Password-protected links are sent to the verification page instead.
    """
    outcome = redirect_service.resolve_redirect(db, short_code, **_request_headers(request))

    if isinstance(outcome, Redirect):
        # 302 so every visit comes back through here and gets counted
        return RedirectResponse(url=outcome.destination_url, status_code=302, headers=NO_CACHE_HEADERS)

    if isinstance(outcome, PasswordRequired):
        return RedirectResponse(
            url=f"{settings.FRONTEND_URL}/verify/{outcome.short_code}",
            status_code=302,
            headers=NO_CACHE_HEADERS
        )

    if isinstance(outcome, NotFound):
        return HTMLResponse(content=get_404_page(), status_code=404, headers=NO_CACHE_HEADERS)

    # Expired or Deactivated
    return HTMLResponse(content=get_410_page(), status_code=410, headers=NO_CACHE_HEADERS)


@router.post("/verify-password", response_model=VerifyPasswordResponse)
@limiter.limit(settings.RATE_LIMIT_VERIFY)
def verify_link_password(
    request: Request,
    body: VerifyPasswordRequest,
    db: Session = Depends(get_db)
):
    """Unlock a password-protected link and return its destination"""
    outcome = redirect_service.verify_password(
        db, body.short_code, body.password, **_request_headers(request)
    )

    if isinstance(outcome, InvalidOrUnprotected):
        return JSONResponse(status_code=404, content={"detail": "Invalid or unprotected link"})

    if isinstance(outcome, IncorrectPassword):
        return JSONResponse(status_code=401, content={"detail": "Incorrect password"})

    return {"long_url": outcome.destination_url}
