from fastapi import APIRouter, Depends, HTTPException, status, Request
from pydantic import BaseModel, EmailStr, Field, field_validator
from motor.motor_asyncio import AsyncIOMotorDatabase
from ..db import get_db
from ..security import hash_password, verify_password, create_access_token, get_current_user
from ..schemas.user import UserOut
from ..utils import to_id, utcnow
from ..middleware.rate_limit import apply_rate_limit
import re
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

# Validadores personalizados
def validate_phone(phone: str) -> str:
    """Valida formato de teléfono (permite +, números, espacios, guiones)"""
    if not phone:
        return phone
    cleaned = re.sub(r'[\s\-]', '', phone)
    if not re.match(r'^\+?\d{9,15}$', cleaned):
        raise ValueError("Formato de teléfono inválido. Use formato internacional (ej: +34600123456)")
    return phone

def validate_password_strength(password: str) -> str:
    """Al menos 6 caracteres y como mucho 72 (límite de bcrypt)"""
    if len(password) < 6:
        raise ValueError("La contraseña debe tener al menos 6 caracteres")
    if len(password.encode("utf-8")) > 72:
        raise ValueError("La contraseña no puede exceder 72 bytes")
    if password.isdigit() or password.isalpha():
        logger.warning("Contraseña débil detectada (solo números o solo letras)")
    return password

class Signup(BaseModel):
    name: str = Field(..., min_length=2, max_length=80, description="Nombre completo del cliente")
    email: EmailStr = Field(..., description="Email válido")
    password: str = Field(..., min_length=6, max_length=72, description="Contraseña (mín. 6 caracteres)")
    phone: str | None = Field(None, max_length=20, description="Teléfono de contacto")
    address: str | None = Field(None, max_length=200, description="Dirección completa")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v: str | None) -> str | None:
        if v:
            return validate_phone(v)
        return v

class Login(BaseModel):
    email: EmailStr = Field(..., description="Email del cliente")
    password: str = Field(..., min_length=1, description="Contraseña")

@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserOut)
async def signup(request: Request, payload: Signup, db: AsyncIOMotorDatabase = Depends(get_db)):
    # Rate limiting: máximo 5 registros por minuto por IP
    apply_rate_limit(request, "5/minute")

    exists = await db.users.find_one({"email": payload.email})
    if exists:
        raise HTTPException(409, "Email ya registrado")

    doc = payload.model_dump()
    doc["password_hash"] = hash_password(doc.pop("password"))
    doc["is_staff"] = False
    doc["created_at"] = utcnow()

    res = await db.users.insert_one(doc)
    created = await db.users.find_one({"_id": res.inserted_id}, {"password_hash": 0})
    return to_id(created)

@router.post("/login")
async def login(request: Request, payload: Login, db: AsyncIOMotorDatabase = Depends(get_db)):
    # Rate limiting: máximo 10 intentos de login por minuto por IP
    apply_rate_limit(request, "10/minute")

    user = await db.users.find_one({"email": payload.email})
    if not user or not verify_password(payload.password, user.get("password_hash", "")):
        raise HTTPException(401, "Credenciales inválidas")
    token = create_access_token(str(user["_id"]))
    return {"access_token": token, "token_type": "bearer"}

@router.get("/me", response_model=UserOut)
async def me(current=Depends(get_current_user)):
    return current
