from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime

Species = Literal["dog", "cat", "bird", "rabbit", "hamster", "fish", "other"]

class MedicalRecordIn(BaseModel):
    condition: str = Field(..., min_length=1, max_length=200)
    date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)

class MedicalRecord(BaseModel):
    condition: str
    date: datetime
    notes: Optional[str] = None

class VaccinationIn(BaseModel):
    vaccine: str = Field(..., min_length=1, max_length=120)
    date: datetime
    next_due: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=1000)

class Vaccination(BaseModel):
    vaccine: str
    date: datetime
    next_due: Optional[datetime] = None
    notes: Optional[str] = None

class PetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    species: Species = "dog"
    breed: str = Field(..., min_length=1, max_length=80)
    age: float = Field(..., ge=0, le=30)
    weight: Optional[float] = Field(None, ge=0.1)
    gender: Literal["male", "female", "unknown"] = "unknown"
    color: Optional[str] = Field(None, max_length=40)
    allergies: List[str] = []
    special_instructions: Optional[str] = None
    profile_image: str = ""

class PetUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=80)
    species: Optional[Species] = None
    breed: Optional[str] = Field(None, min_length=1, max_length=80)
    age: Optional[float] = Field(None, ge=0, le=30)
    weight: Optional[float] = Field(None, ge=0.1)
    gender: Optional[Literal["male", "female", "unknown"]] = None
    color: Optional[str] = Field(None, max_length=40)
    allergies: Optional[List[str]] = None
    special_instructions: Optional[str] = None
    profile_image: Optional[str] = None

class PetOut(PetCreate):
    id: str
    owner_id: str
    is_active: bool = True
    medical_history: List[MedicalRecord] = []
    vaccinations: List[Vaccination] = []
