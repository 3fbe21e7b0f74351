from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

# Les options check_same_thread ne concernent que SQLite
connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db():
    """Initialise la base de données et les catégories par défaut"""
    from database.models import TransactionModel, CategoryModel, BudgetModel
    from database.crud import init_default_categories
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        init_default_categories(db)
    finally:
        db.close()

def get_db():
    """Dependency pour obtenir une session de base de données"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
