"""
app/api/oauth.py

Purpose: Google OAuth endpoints for calendar linking

- /oauth/google/start redirects the user to Google's consent screen
- /oauth/google/callback exchanges the code and stores the tokens
"""

from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from app.core.exceptions import OAuthError
from app.core.logging import get_logger
from app.services.oauth_service import decode_state, get_oauth_service

logger = get_logger(__name__)
router = APIRouter(prefix="/oauth/google")

_PAGE = """<!DOCTYPE html>
<html>
  <head>
    <title>{title}</title>
    <style>
      body {{ font-family: Arial, sans-serif; text-align: center; padding: 50px; background: #f5f5f5; }}
      .container {{ background: white; padding: 30px; border-radius: 10px;
                    box-shadow: 0 2px 10px rgba(0,0,0,0.1); max-width: 400px; margin: 0 auto; }}
      .message {{ margin: 20px 0; }}
    </style>
  </head>
  <body>
    <div class="container">
      <div style="font-size: 24px">{icon}</div>
      <h2>{title}</h2>
      {body}
    </div>
  </body>
</html>"""

SUCCESS_PAGE = _PAGE.format(
    title="Google Calendar Connected!",
    icon="✅",
    body=(
        '<div class="message">Your Google Calendar has been linked to your WhatsApp assistant.</div>'
        '<div class="message">You can close this window and return to WhatsApp.</div>'
        '<div class="message">Try typing "agenda" to see your daily schedule!</div>'
    ),
)

FAILURE_PAGE = _PAGE.format(
    title="Connection Failed",
    icon="❌",
    body=(
        '<div class="message">Sorry, we couldn\'t connect your Google Calendar at this time.</div>'
        '<div class="message">Please try again later.</div>'
    ),
)


@router.get("/start")
async def oauth_start(uid: Optional[str] = None):
    """Starts the OAuth flow for uid."""
    if not uid or not uid.strip():
        logger.warning("OAuth start missing uid parameter")
        raise HTTPException(status_code=400, detail="Missing uid parameter")

    url = get_oauth_service().get_authorization_url(uid.strip())
    logger.info("OAuth flow started", extra={"uid": uid})
    return RedirectResponse(url, status_code=302)


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
):
    """
    OAuth callback.

    GET /oauth/google/callback?code=...&state=...
    """
    if error:
        logger.warning(f"OAuth callback error: {error}")
        raise HTTPException(status_code=400, detail=f"OAuth authorization was denied or failed: {error}")

    if not code or not state:
        logger.warning(f"OAuth callback missing parameters (code={bool(code)}, state={bool(state)})")
        raise HTTPException(status_code=400, detail="Missing authorization code or state")

    uid = decode_state(state)

    try:
        await get_oauth_service().exchange_code(code, uid)
    except OAuthError as e:
        logger.error(f"Error in OAuth callback: {e.message}", extra={"uid": uid})
        return HTMLResponse(FAILURE_PAGE, status_code=500)

    logger.info("OAuth callback completed successfully", extra={"uid": uid})
    return HTMLResponse(SUCCESS_PAGE)
