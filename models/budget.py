from pydantic import BaseModel, Field
from typing import Optional

from models.money import Money

class BudgetBase(BaseModel):
    category: str = Field(..., min_length=1)
    amount: Money = Field(..., ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000)

class BudgetCreate(BudgetBase):
    pass

class BudgetUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1)
    amount: Optional[Money] = Field(None, ge=0)
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000)

class Budget(BudgetBase):
    id: int

    class Config:
        from_attributes = True
