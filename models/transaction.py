import datetime as dt
from pydantic import BaseModel, Field
from typing import Literal, Optional

from models.money import Money

TransactionType = Literal["income", "expense"]

class TransactionBase(BaseModel):
    title: Optional[str] = None
    description: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None
    amount: Money
    category: str = Field("Uncategorized", min_length=1)
    type: TransactionType
    date: dt.date

class TransactionCreate(TransactionBase):
    pass

class TransactionUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None
    amount: Optional[Money] = None
    category: Optional[str] = Field(None, min_length=1)
    type: Optional[TransactionType] = None
    date: Optional[dt.date] = None

class Transaction(TransactionBase):
    id: int

    class Config:
        from_attributes = True
