# petcare/utils.py
from typing import Any, Dict, Optional
from bson import ObjectId
from datetime import datetime, timezone
from fastapi import HTTPException

def to_id(doc: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Convierte _id -> id (str) y todos los ObjectIds a strings.
    Si doc es None, devuelve {}.
    Los datetime se dejan tal cual para que pydantic los serialice.
    """
    if doc is None:
        return {}
    d = dict(doc)

    if "_id" in d:
        d["id"] = str(d.pop("_id"))

    for key, value in d.items():
        if isinstance(value, ObjectId):
            d[key] = str(value)
        elif isinstance(value, dict):
            d[key] = to_id(value)
        elif isinstance(value, list):
            d[key] = [
                str(item) if isinstance(item, ObjectId)
                else to_id(item) if isinstance(item, dict)
                else item
                for item in value
            ]

    return d

def to_object_id(value: str, field_name: str = "id") -> ObjectId:
    """
    Convierte un string a ObjectId con validación.
    Centraliza la lógica de conversión para evitar duplicación.
    """
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {field_name}: {value}")
    return ObjectId(value)

def utcnow() -> datetime:
    """UTC naive, igual que los datetime que devuelve Motor."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
