# petcare/routers/services.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional, List, Dict, Any, Literal
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from bson import ObjectId
import math
import re
from ..db import get_db
from ..security import require_staff
from ..schemas.service import (
    ServiceCategory,
    ServiceCreate,
    ServiceOut,
    ServicePage,
    ServicePagination,
    ServiceUpdate,
)
from ..utils import to_id, utcnow

router = APIRouter()

DUPLICATE_NAME = "Ya existe un servicio con ese nombre"

def _oid(v: str) -> ObjectId:
    if not ObjectId.is_valid(v):
        raise HTTPException(404, "Servicio no encontrado")
    return ObjectId(v)

# GET /services?category=...&search=...&min_price=...&page=...
@router.get("", response_model=ServicePage)
async def list_services(
    category: Optional[ServiceCategory] = None,
    search: Optional[str] = None,
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["name", "price", "duration", "created_at"] = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    q: Dict[str, Any] = {"is_active": True}
    if category:
        q["category"] = category
    if min_price is not None or max_price is not None:
        q["price"] = {}
        if min_price is not None:
            q["price"]["$gte"] = min_price
        if max_price is not None:
            q["price"]["$lte"] = max_price
    if search:
        rx = {"$regex": re.escape(search), "$options": "i"}
        q["$or"] = [{"name": rx}, {"description": rx}]

    total = await db.services.count_documents(q)
    docs = await (
        db.services.find(q)
        .sort(sort_by, -1 if sort_order == "desc" else 1)
        .skip((page - 1) * limit)
        .limit(limit)
        .to_list(limit)
    )
    return ServicePage(
        data=[to_id(d) for d in docs],
        pagination=ServicePagination(
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_services=total,
            has_next_page=page * limit < total,
            has_prev_page=page > 1,
        ),
    )

@router.get("/category/{category}", response_model=List[ServiceOut])
async def list_by_category(category: ServiceCategory, db: AsyncIOMotorDatabase = Depends(get_db)):
    docs = await db.services.find({"category": category, "is_active": True}).sort("name", 1).to_list(200)
    return [to_id(d) for d in docs]

@router.get("/{service_id}", response_model=ServiceOut)
async def get_service(service_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    s = await db.services.find_one({"_id": _oid(service_id), "is_active": True})
    if not s:
        raise HTTPException(404, "Servicio no encontrado")
    return to_id(s)

# POST /services
@router.post("", response_model=ServiceOut, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    staff=Depends(require_staff),
):
    doc = payload.model_dump()
    doc["name"] = doc["name"].strip()
    if await db.services.find_one({"name": doc["name"]}):
        raise HTTPException(409, DUPLICATE_NAME)

    doc["is_active"] = True
    doc["created_at"] = doc["updated_at"] = utcnow()
    try:
        res = await db.services.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(409, DUPLICATE_NAME)
    created = await db.services.find_one({"_id": res.inserted_id})
    return to_id(created)

# PUT /services/{service_id}
# Las reservas ya creadas conservan su precio y duración.
@router.put("/{service_id}", response_model=ServiceOut)
async def update_service(
    service_id: str,
    payload: ServiceUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    staff=Depends(require_staff),
):
    oid = _oid(service_id)
    # null explícito no borra campos
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if await db.services.find_one({"name": updates["name"], "_id": {"$ne": oid}}):
            raise HTTPException(409, DUPLICATE_NAME)
    updates["updated_at"] = utcnow()
    try:
        s = await db.services.find_one_and_update(
            {"_id": oid},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise HTTPException(409, DUPLICATE_NAME)
    if not s:
        raise HTTPException(404, "Servicio no encontrado")
    return to_id(s)

# DELETE /services/{service_id}  (desactivar)
@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    staff=Depends(require_staff),
):
    res = await db.services.update_one(
        {"_id": _oid(service_id)},
        {"$set": {"is_active": False, "updated_at": utcnow()}},
    )
    if res.matched_count == 0:
        raise HTTPException(404, "Servicio no encontrado")
    # 204 No Content
