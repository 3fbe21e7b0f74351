from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional

CategoryType = Literal["expense", "income", "both"]

def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("Le nom de la catégorie ne peut pas être vide")
    return value

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1)
    type: CategoryType = "expense"
    color: str = "#3498db"
    icon: str = "tag"

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return _clean_name(value)

class CategoryCreate(CategoryBase):
    pass

class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[CategoryType] = None
    color: Optional[str] = None
    icon: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        return _clean_name(value)

class Category(CategoryBase):
    id: int

    class Config:
        from_attributes = True
