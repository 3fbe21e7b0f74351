import math
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from database.models import TransactionModel, CategoryModel, BudgetModel
from models.transaction import TransactionCreate, TransactionUpdate
from models.category import CategoryCreate, CategoryUpdate
from models.budget import BudgetCreate, BudgetUpdate

DEFAULT_CATEGORIES = [
    {'name': 'Food & Dining', 'color': '#e74c3c', 'icon': 'utensils', 'type': 'expense'},
    {'name': 'Transportation', 'color': '#3498db', 'icon': 'car', 'type': 'expense'},
    {'name': 'Housing', 'color': '#2ecc71', 'icon': 'home', 'type': 'expense'},
    {'name': 'Utilities', 'color': '#f39c12', 'icon': 'bolt', 'type': 'expense'},
    {'name': 'Entertainment', 'color': '#9b59b6', 'icon': 'film', 'type': 'expense'},
    {'name': 'Shopping', 'color': '#e67e22', 'icon': 'shopping-bag', 'type': 'expense'},
    {'name': 'Healthcare', 'color': '#1abc9c', 'icon': 'medkit', 'type': 'expense'},
    {'name': 'Personal Care', 'color': '#34495e', 'icon': 'user', 'type': 'expense'},
    {'name': 'Education', 'color': '#8e44ad', 'icon': 'book', 'type': 'expense'},
    {'name': 'Salary', 'color': '#27ae60', 'icon': 'money-bill', 'type': 'income'},
    {'name': 'Investment', 'color': '#16a085', 'icon': 'chart-line', 'type': 'income'},
    {'name': 'Gift', 'color': '#f1c40f', 'icon': 'gift', 'type': 'income'},
    {'name': 'Other', 'color': '#95a5a6', 'icon': 'ellipsis-h', 'type': 'both'},
]

def _apply_update(instance, update):
    """Copie les champs renseignés d'un schéma de mise à jour"""
    for field, value in update.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(instance, field, value)

# Transaction CRUD functions
def create_transaction(db: Session, transaction: TransactionCreate):
    """Crée une nouvelle transaction"""
    db_transaction = TransactionModel(**transaction.model_dump())
    db.add(db_transaction)
    db.commit()
    db.refresh(db_transaction)
    return db_transaction

def get_transaction_by_id(db: Session, transaction_id: int):
    """Récupère une transaction par son ID"""
    return db.query(TransactionModel).filter(TransactionModel.id == transaction_id).first()

def get_transactions_between(db: Session, start: date, end: date):
    """Récupère les transactions entre deux dates (bornes incluses)"""
    return db.query(TransactionModel).filter(
        TransactionModel.date >= start,
        TransactionModel.date <= end
    ).order_by(TransactionModel.date, TransactionModel.id).all()

def list_transactions(
    db: Session,
    type: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = 1,
    limit: int = 10
):
    """
    Liste les transactions filtrées et paginées

    Returns:
        (transactions de la page, bloc de pagination)
    """
    query = db.query(TransactionModel)
    if type:
        query = query.filter(TransactionModel.type == type)
    if category:
        query = query.filter(TransactionModel.category == category)
    if start_date:
        query = query.filter(TransactionModel.date >= start_date)
    if end_date:
        query = query.filter(TransactionModel.date <= end_date)

    total_items = query.count()
    total_pages = math.ceil(total_items / limit) if limit else 0
    items = query.order_by(TransactionModel.date.desc(), TransactionModel.id.desc()) \
        .offset((page - 1) * limit).limit(limit).all()

    pagination = {
        'totalItems': total_items,
        'totalPages': total_pages,
        'currentPage': page,
        'hasNextPage': page < total_pages,
        'hasPrevPage': page > 1
    }
    return items, pagination

def update_transaction(db: Session, transaction_id: int, transaction_update: TransactionUpdate):
    """Met à jour une transaction"""
    transaction = get_transaction_by_id(db, transaction_id)
    if not transaction:
        return None
    _apply_update(transaction, transaction_update)
    db.commit()
    db.refresh(transaction)
    return transaction

def delete_transaction(db: Session, transaction_id: int):
    """Supprime une transaction"""
    transaction = get_transaction_by_id(db, transaction_id)
    if not transaction:
        return False
    db.delete(transaction)
    db.commit()
    return True

# Category CRUD functions
def get_all_categories(db: Session):
    """Récupère toutes les catégories, triées par nom"""
    return db.query(CategoryModel).order_by(CategoryModel.name).all()

def get_category_by_id(db: Session, category_id: int):
    return db.query(CategoryModel).filter(CategoryModel.id == category_id).first()

def get_category_by_name(db: Session, name: str):
    return db.query(CategoryModel).filter(CategoryModel.name == name).first()

def create_category(db: Session, category: CategoryCreate):
    """Crée une catégorie (None si le nom existe déjà)"""
    if get_category_by_name(db, category.name):
        return None
    db_category = CategoryModel(**category.model_dump())
    db.add(db_category)
    db.commit()
    db.refresh(db_category)
    return db_category

def update_category(db: Session, category_id: int, category_update: CategoryUpdate):
    """Met à jour une catégorie. Les transactions et budgets ne sont pas renommés."""
    category = get_category_by_id(db, category_id)
    if not category:
        return None
    _apply_update(category, category_update)
    db.commit()
    db.refresh(category)
    return category

def delete_category(db: Session, category_id: int):
    """Supprime une catégorie, sans cascade sur les transactions et budgets"""
    category = get_category_by_id(db, category_id)
    if not category:
        return False
    db.delete(category)
    db.commit()
    return True

def init_default_categories(db: Session):
    """Insère les catégories par défaut si la table est vide"""
    if db.query(CategoryModel).count() > 0:
        return 0
    db.add_all([CategoryModel(**category) for category in DEFAULT_CATEGORIES])
    db.commit()
    return len(DEFAULT_CATEGORIES)

# Budget CRUD functions
def create_budget(db: Session, budget: BudgetCreate):
    """Crée ou met à jour un budget pour une catégorie"""
    existing = get_budget(db, budget.category, budget.month, budget.year)

    if existing:
        existing.amount = budget.amount
        db.commit()
        db.refresh(existing)
        return existing
    else:
        db_budget = BudgetModel(
            category=budget.category,
            amount=budget.amount,
            month=budget.month,
            year=budget.year
        )
        db.add(db_budget)
        db.commit()
        db.refresh(db_budget)
        return db_budget

def get_budget(db: Session, category: str, month: int, year: int):
    """Récupère un budget spécifique"""
    return db.query(BudgetModel).filter(
        BudgetModel.category == category,
        BudgetModel.month == month,
        BudgetModel.year == year
    ).first()

def get_budget_by_id(db: Session, budget_id: int):
    return db.query(BudgetModel).filter(BudgetModel.id == budget_id).first()

def get_all_budgets(db: Session, month: int = None, year: int = None):
    """Récupère tous les budgets, optionnellement filtrés par mois/année"""
    query = db.query(BudgetModel)
    if month and year:
        query = query.filter(
            BudgetModel.month == month,
            BudgetModel.year == year
        )
    return query.order_by(BudgetModel.id).all()

def update_budget(db: Session, budget_id: int, budget_update: BudgetUpdate):
    """Met à jour un budget"""
    budget = get_budget_by_id(db, budget_id)
    if not budget:
        return None

    if budget_update.category is not None:
        budget.category = budget_update.category
    if budget_update.amount is not None:
        budget.amount = budget_update.amount
    if budget_update.month is not None:
        budget.month = budget_update.month
    if budget_update.year is not None:
        budget.year = budget_update.year

    db.commit()
    db.refresh(budget)
    return budget

def delete_budget(db: Session, budget_id: int):
    """Supprime un budget"""
    budget = get_budget_by_id(db, budget_id)
    if not budget:
        return False
    db.delete(budget)
    db.commit()
    return True
