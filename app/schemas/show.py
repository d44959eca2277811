from typing import Optional, List
from pydantic import BaseModel, UUID4
from datetime import datetime


class VenueSummary(BaseModel):
    id: UUID4
    name: str
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: str

    class Config:
        from_attributes = True


class EnsembleSummary(BaseModel):
    id: UUID4
    title: str
    slug: str

    class Config:
        from_attributes = True


class Show(BaseModel):
    id: UUID4
    title: str
    show_datetime: datetime
    status: str
    base_price: int
    available_seats: Optional[int] = None
    venue: Optional[VenueSummary] = None
    ensemble: Optional[EnsembleSummary] = None


# Ensemble page (GET /ensembles/{slug})
class EnsembleDetail(BaseModel):
    id: UUID4
    title: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    upcoming_shows: List[Show] = []
