from typing import Optional
from fastapi import Depends, HTTPException, Request, status

from app.core.config import settings
from app.services.server_cart import ServerCartClient
from app.services.session import SessionPayload, get_session, is_authenticated

def get_session_token(request: Request) -> Optional[str]:
    """Token issued by the backend, carried in the session cookie"""
    return request.cookies.get(settings.SESSION_COOKIE)

def get_store_id(request: Request) -> Optional[int]:
    header_store_id = request.headers.get("x-store-id")
    cookie_store_id = request.cookies.get(settings.STORE_ID_COOKIE)
    resolved = header_store_id or cookie_store_id
    if resolved and resolved.isdigit():
        return int(resolved)
    return settings.DEFAULT_STORE_ID

def get_current_session_optional(token: Optional[str] = Depends(get_session_token)) -> Optional[SessionPayload]:
    return get_session(token)

def get_current_session(session: Optional[SessionPayload] = Depends(get_current_session_optional)) -> SessionPayload:
    if not is_authenticated(session):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return session

def get_server_cart_client(
    token: Optional[str] = Depends(get_session_token),
    session: Optional[SessionPayload] = Depends(get_current_session_optional),
    store_id: Optional[int] = Depends(get_store_id),
) -> ServerCartClient:
    # Without a usable session the client stays unauthorized and never calls out
    return ServerCartClient(token if is_authenticated(session) else None, store_id=store_id)
