from pydantic import BaseModel, Field
from typing import Optional, Literal

ServiceCategory = Literal[
    "grooming", "walking", "training", "veterinary", "boarding",
    "exercise", "health", "care", "other",
]

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(..., min_length=1, max_length=2000)
    price: float = Field(..., ge=0)
    duration: int = Field(..., ge=15, description="Minutos")
    category: ServiceCategory
    image: str = ""
    features: list[str] = []
    requirements: list[str] = []

class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=2000)
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[int] = Field(None, ge=15)
    category: Optional[ServiceCategory] = None
    image: Optional[str] = None
    features: Optional[list[str]] = None
    requirements: Optional[list[str]] = None
    is_active: Optional[bool] = None

class ServiceOut(ServiceCreate):
    id: str
    is_active: bool = True

class ServicePagination(BaseModel):
    current_page: int
    total_pages: int
    total_services: int
    has_next_page: bool
    has_prev_page: bool

class ServicePage(BaseModel):
    data: list[ServiceOut]
    pagination: ServicePagination
