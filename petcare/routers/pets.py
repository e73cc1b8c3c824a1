from fastapi import APIRouter, Depends, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from ..db import get_db
from ..security import get_current_user
from ..schemas.pet import MedicalRecordIn, PetCreate, PetOut, PetUpdate, VaccinationIn
from ..utils import to_id, to_naive_utc, to_object_id, utcnow

router = APIRouter()

def _oid(pet_id: str):
    try:
        return to_object_id(pet_id, "pet_id")
    except HTTPException:
        raise HTTPException(status_code=404, detail="Mascota no encontrada")

@router.get("", response_model=list[PetOut])
async def my_pets(
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    docs = await db.pets.find({"owner_id": current["id"], "is_active": True}).sort("created_at", -1).to_list(200)
    return [to_id(d) for d in docs]

@router.get("/{pet_id}", response_model=PetOut)
async def get_pet(
    pet_id: str,
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    pet = await db.pets.find_one({"_id": _oid(pet_id), "owner_id": current["id"], "is_active": True})
    if not pet:
        raise HTTPException(status_code=404, detail="Mascota no encontrada")
    return to_id(pet)

@router.post("", response_model=PetOut, status_code=status.HTTP_201_CREATED)
async def create_pet(
    payload: PetCreate,
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    doc = payload.model_dump()
    doc["owner_id"] = current["id"]     # lo pone el backend
    doc["is_active"] = True
    doc["created_at"] = doc["updated_at"] = utcnow()
    res = await db.pets.insert_one(doc)
    doc["_id"] = res.inserted_id
    return to_id(doc)

@router.put("/{pet_id}", response_model=PetOut)
async def update_pet(
    pet_id: str,
    payload: PetUpdate,
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    # null explícito no borra campos
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    updates["updated_at"] = utcnow()
    pet = await db.pets.find_one_and_update(
        {"_id": _oid(pet_id), "owner_id": current["id"], "is_active": True},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if not pet:
        raise HTTPException(status_code=404, detail="Mascota no encontrada")
    return to_id(pet)

async def _push_entry(db: AsyncIOMotorDatabase, pet_id: str, owner_id: str, field: str, entry: dict):
    pet = await db.pets.find_one_and_update(
        {"_id": _oid(pet_id), "owner_id": owner_id, "is_active": True},
        {"$push": {field: entry}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not pet:
        raise HTTPException(status_code=404, detail="Mascota no encontrada")
    return to_id(pet)

@router.post("/{pet_id}/medical", response_model=PetOut)
async def add_medical_record(
    pet_id: str,
    payload: MedicalRecordIn,
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    entry = {
        "condition": payload.condition.strip(),
        "date": to_naive_utc(payload.date) if payload.date else utcnow(),
        "notes": payload.notes.strip() if payload.notes else None,
    }
    return await _push_entry(db, pet_id, current["id"], "medical_history", entry)

@router.post("/{pet_id}/vaccination", response_model=PetOut)
async def add_vaccination(
    pet_id: str,
    payload: VaccinationIn,
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    entry = {
        "vaccine": payload.vaccine.strip(),
        "date": to_naive_utc(payload.date),
        "next_due": to_naive_utc(payload.next_due) if payload.next_due else None,
        "notes": payload.notes.strip() if payload.notes else None,
    }
    return await _push_entry(db, pet_id, current["id"], "vaccinations", entry)

@router.delete("/{pet_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pet(
    pet_id: str,
    current=Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    # borrado lógico: las reservas antiguas siguen apuntando a la mascota
    result = await db.pets.update_one(
        {"_id": _oid(pet_id), "owner_id": current["id"], "is_active": True},
        {"$set": {"is_active": False, "updated_at": utcnow()}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Mascota no encontrada")
    return None
