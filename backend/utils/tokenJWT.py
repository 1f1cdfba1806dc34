# utils/tokenJWT.py
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models import users as models
from utils.errors import Forbidden, Unauthorized

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

# Missing credentials are reported by us, not by the scheme
bearer_scheme = HTTPBearer(auto_error=False)

# Generate a new JWT access token (tokens are normally minted by the identity service)
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def _user_from_token(token: str, db: Session) -> models.User:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
        # Ensure email is present in the token payload
        if email is None:
            raise Unauthorized("Could not validate credentials")
    except JWTError:
        raise Unauthorized("Could not validate credentials")

    user = db.query(models.User).filter(models.User.email == email).first()
    if user is None:
        raise Unauthorized("Could not validate credentials")
    return user

# Retrieve the currently authenticated user based on the JWT token
def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    if credentials is None:
        raise Unauthorized("Not authorized, no token")
    return _user_from_token(credentials.credentials, db)

# Same as get_current_user, but anonymous requests get None.
# A token that is present and invalid is still rejected.
def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    if credentials is None:
        return None
    return _user_from_token(credentials.credentials, db)

# Admin capability asserted by the gateway through the x-role header
def is_admin_request(x_role: Optional[str] = Header(default=None, alias="x-role")) -> bool:
    return (x_role or "").lower() == "admin"

def require_admin(admin: bool = Depends(is_admin_request)):
    if not admin:
        raise Forbidden("Access denied. Admins only.")
    return "admin"
