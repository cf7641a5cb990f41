from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from . import schemas
from .admin import ReservationAdmin
from .admin_calendar import CalendarReconciler
from .booking import BookingWorkflow
from .config import settings
from .engine import AvailabilityEngine
from .errors import AuthenticationError
from .sessions import Session, SessionStore


# ----- Core services -----
# main.py builds these at startup and stores them on app.state
def get_engine(request: Request) -> AvailabilityEngine:
    return request.app.state.engine


def get_workflow(engine: AvailabilityEngine = Depends(get_engine)) -> BookingWorkflow:
    return BookingWorkflow(engine)


def get_reconciler(engine: AvailabilityEngine = Depends(get_engine)) -> CalendarReconciler:
    return CalendarReconciler(engine)


def get_admin(engine: AvailabilityEngine = Depends(get_engine)) -> ReservationAdmin:
    return ReservationAdmin(engine)


# ----- Session cookie -----
def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_session(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> Session:
    session = store.load(request.cookies.get(settings.session_cookie_name))
    response.set_cookie(
        settings.session_cookie_name,
        session.token,
        max_age=int(store.lifetime.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.in_production,
    )
    return session


# ----- Auth / JWT -----
ALGORITHM = "HS256"
ADMIN_ACCESS_LEVEL = 3

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="user/login")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def authenticate_user(engine: AvailabilityEngine, email: str, password: str) -> schemas.User:
    user = engine.store.get_user_by_email(email)
    if not user or not verify_password(password, user.password):
        raise AuthenticationError("Invalid login credentials")
    return user


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    engine: AvailabilityEngine = Depends(get_engine),
) -> schemas.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        email: Optional[str] = payload.get("sub")
        if email is None:
            raise credentials_exception
        token_data = schemas.TokenData(email=email, access_level=payload.get("access_level"))
    except JWTError:
        raise credentials_exception

    user = engine.store.get_user_by_email(token_data.email)
    if user is None:
        raise credentials_exception
    return user


async def require_admin(current_user: schemas.User = Depends(get_current_user)) -> schemas.User:
    if current_user.access_level < ADMIN_ACCESS_LEVEL:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions",
        )
    return current_user
