# edu_app/auth/auth_utils.py
from jose import jwt, JWTError
from fastapi import Header, HTTPException

from edu_app.config import config


def decode_token(token: str) -> dict:
    if not config.JWT_SECRET_KEY:
        raise HTTPException(status_code=500, detail="Authentication system not initialized")
    try:
        # Decodes and checks expiration/signature
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def verify_lum_token(authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Not authorized, token missing.")

    token = authorization.split(" ", 1)[1].strip()
    return decode_token(token)
