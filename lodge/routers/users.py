import logging

from fastapi import APIRouter, Depends, Request, Response

from .. import schemas
from ..config import settings
from ..deps import (
    authenticate_user,
    create_access_token,
    get_current_user,
    get_engine,
    get_session,
    get_session_store,
)
from ..engine import AvailabilityEngine
from ..sessions import Session, SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["auth"])


@router.post("/login", response_model=schemas.Token)
def login_for_access_token(
    email: str,
    password: str,
    session: Session = Depends(get_session),
    engine: AvailabilityEngine = Depends(get_engine),
):
    """
    Authenticate a user and return a JWT access token.

    Parameters
    ----------
    email : str
        Email address of the account.
    password : str
        Plain-text password.

    Raises
    ------
    AuthenticationError
        - 401 if the credentials do not match.
    """
    user = authenticate_user(engine, email, password)
    session.user_id = user.id
    logger.info("User %s logged in", user.id)
    token = create_access_token(data={"sub": user.email, "access_level": user.access_level})
    return schemas.Token(access_token=token)


@router.get("/me")
def read_me(current_user: schemas.User = Depends(get_current_user)):
    return {
        "id": current_user.id,
        "email": current_user.email,
        "first_name": current_user.first_name,
        "last_name": current_user.last_name,
        "access_level": current_user.access_level,
    }


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
):
    """Drop everything kept in the session, including any draft reservation."""
    session = store.get(request.cookies.get(settings.session_cookie_name))
    if session is not None:
        store.destroy(session)
    response.delete_cookie(settings.session_cookie_name)
    return {"detail": "Logged out"}
