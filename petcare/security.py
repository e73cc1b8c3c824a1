from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId

from .config import get_settings
from .db import get_db
from .utils import to_id

settings = get_settings()
ALGO = "HS256"
pwd = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def hash_password(plain: str) -> str:
    return pwd.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd.verify(plain, hashed)


def create_access_token(user_id: str, expires_hours: Optional[int] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=expires_hours or settings.jwt_expires_hours)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGO)


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGO])
        sub = payload.get("sub")
        if not sub or not ObjectId.is_valid(str(sub)):
            raise HTTPException(status_code=401, detail="Token inválido")
        return str(sub)
    except JWTError:
        raise HTTPException(status_code=401, detail="Token inválido")


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    doc = await db.users.find_one({"_id": ObjectId(user_id)}, {"password_hash": 0})
    if not doc:
        raise HTTPException(status_code=401, detail="Usuario no encontrado")
    return to_id(doc)


async def require_staff(current=Depends(get_current_user)):
    if not current.get("is_staff"):
        raise HTTPException(status_code=403, detail="Solo personal autorizado")
    return current
