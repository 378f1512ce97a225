"""
Session cookie transport.
"""
from fastapi import Response
from planner.core.config import settings
from planner.services.session_service import IssuedSession

ACCESS_MAX_AGE = settings.ACCESS_CODE_COOKIE_MAX_AGE_DAYS * 24 * 60 * 60


def _set(response: Response, key: str, value: str, max_age: int, httponly: bool = True) -> None:
    response.set_cookie(
        key=key,
        value=value,
        max_age=max_age,
        httponly=httponly,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/"
    )


def set_session_cookies(response: Response, issued: IssuedSession) -> None:
    """Write the session, group id and traveler name cookies."""
    _set(response, settings.SESSION_COOKIE, issued.token, issued.max_age)
    # Readable by the client so it can show the active group
    _set(response, settings.GROUP_ID_COOKIE, str(issued.group_id), issued.max_age, httponly=False)
    _set(response, settings.TRAVELER_NAME_COOKIE, issued.traveler_name, issued.max_age, httponly=False)


def set_access_cookie(response: Response, token: str) -> None:
    _set(response, settings.SESSION_COOKIE, token, ACCESS_MAX_AGE)


def clear_session_cookies(response: Response) -> None:
    for key in (settings.SESSION_COOKIE, settings.GROUP_ID_COOKIE, settings.TRAVELER_NAME_COOKIE):
        response.delete_cookie(key=key, path="/")
