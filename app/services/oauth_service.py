"""
app/services/oauth_service.py

Purpose: Google OAuth for calendar linking

- Builds the consent URL with the uid carried in "state"
- Exchanges the callback code for tokens
- Persists the refresh/access token pair through the user directory
"""

import base64
import binascii
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import settings
from app.core.exceptions import OAuthError
from app.core.logging import get_logger
from app.services.calendar_service import CALENDAR_SCOPES, GOOGLE_TOKEN_URI
from app.services.user_service import UserService

logger = get_logger(__name__)

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_EXCHANGE_TIMEOUT = 10.0


def encode_state(uid: str) -> str:
    return base64.urlsafe_b64encode(uid.encode("utf-8")).decode("ascii")


def decode_state(state: str) -> str:
    """
    Recovers the uid from an OAuth state value.

    Raises:
        OAuthError: state is not valid base64 / utf-8 or is empty
    """
    try:
        padded = state + "=" * (-len(state) % 4)
        uid = base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError) as e:
        raise OAuthError("Invalid state parameter") from e
    if not uid.strip():
        raise OAuthError("Invalid state parameter")
    return uid


class OAuthService:
    def __init__(
        self,
        users: Optional[UserService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.users = users or UserService()
        self._transport = transport

    def get_authorization_url(self, uid: str) -> str:
        if not settings.oauth_configured:
            raise OAuthError("Google OAuth is not configured", status_code=503)

        params = {
            "client_id": settings.GOOGLE_CLIENT_ID,
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "response_type": "code",
            "scope": " ".join(CALENDAR_SCOPES),
            "access_type": "offline",
            "prompt": "consent",
            "include_granted_scopes": "true",
            "state": encode_state(uid),
        }
        logger.info("Generated OAuth URL", extra={"uid": uid})
        return f"{GOOGLE_AUTH_URI}?{urlencode(params)}"

    async def exchange_code(self, code: str, uid: str) -> Dict[str, Any]:
        """
        Exchanges an authorization code and stores the tokens for uid.

        Raises:
            OAuthError: Google rejected the code or returned no refresh token
        """
        if not settings.oauth_configured:
            raise OAuthError("Google OAuth is not configured", status_code=503)

        data = {
            "code": code,
            "client_id": settings.GOOGLE_CLIENT_ID,
            "client_secret": settings.GOOGLE_CLIENT_SECRET,
            "redirect_uri": settings.GOOGLE_REDIRECT_URI,
            "grant_type": "authorization_code",
        }

        try:
            async with httpx.AsyncClient(timeout=TOKEN_EXCHANGE_TIMEOUT, transport=self._transport) as client:
                response = await client.post(GOOGLE_TOKEN_URI, data=data)
        except httpx.TransportError as e:
            logger.error(f"Token exchange transport error: {e}", extra={"uid": uid})
            raise OAuthError("Could not reach Google", status_code=502) from e

        if response.status_code != 200:
            logger.error(
                f"Token exchange failed: {response.status_code} - {response.text[:200]}",
                extra={"uid": uid}
            )
            raise OAuthError("Failed to exchange authorization code", status_code=502)

        tokens = response.json()
        if not tokens.get("refresh_token"):
            raise OAuthError("No refresh token received from Google", status_code=502)

        await self.users.save_calendar_link(
            uid,
            refresh_token=tokens["refresh_token"],
            access_token=tokens.get("access_token"),
        )
        logger.info("OAuth tokens stored successfully", extra={"uid": uid})
        return tokens


_oauth_service: Optional[OAuthService] = None


def get_oauth_service() -> OAuthService:
    global _oauth_service
    if _oauth_service is None:
        _oauth_service = OAuthService()
    return _oauth_service
