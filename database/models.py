from sqlalchemy import Column, Integer, String, Numeric, Date, UniqueConstraint
from database.database import Base

class TransactionModel(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=True)
    description = Column(String(100), index=True)
    notes = Column(String, nullable=True)
    amount = Column(Numeric(12, 2))
    category = Column(String, index=True, default="Uncategorized")
    type = Column(String, index=True)  # income | expense
    date = Column(Date, index=True)

class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True)
    type = Column(String, default="expense")  # expense | income | both
    color = Column(String, default="#3498db")
    icon = Column(String, default="tag")

class BudgetModel(Base):
    __tablename__ = "budgets"
    __table_args__ = (
        UniqueConstraint("category", "month", "year", name="uq_budget_category_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String, index=True)
    amount = Column(Numeric(12, 2))
    month = Column(Integer)  # 1-12
    year = Column(Integer)  # ex: 2025
