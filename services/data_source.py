"""
Sources de données pour le moteur d'agrégation

Une seule interface, deux implémentations: la base SQL (SQLDataSource) et
un jeu de données de démonstration en mémoire (MockDataSource, IS_DEMO=true).

Les sources renvoient des enregistrements bruts: la validation des champs
et l'écart des lignes malformées sont faits par le moteur d'agrégation.
"""
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List

from sqlalchemy.orm import Session

from database import crud
from models.budget import Budget
from models.category import Category
from models.transaction import Transaction
from services.aggregation_service import MalformedRecordError, period_bounds, in_period

logger = logging.getLogger(__name__)

TRANSACTION_FIELDS = ('id', 'title', 'description', 'notes', 'amount', 'category', 'type', 'date')
BUDGET_FIELDS = ('id', 'category', 'amount', 'month', 'year')
CATEGORY_FIELDS = ('id', 'name', 'type', 'color', 'icon')


def transaction_to_dict(t) -> Dict:
    return Transaction.model_validate(t).model_dump(mode='json')


def budget_to_dict(b) -> Dict:
    return Budget.model_validate(b).model_dump(mode='json')


def category_to_dict(c) -> Dict:
    return Category.model_validate(c).model_dump(mode='json')


def to_record(row, fields) -> Dict:
    """Ligne ORM vers dict, sans validation (les colonnes peuvent être NULL)"""
    record = {field: getattr(row, field, None) for field in fields}
    if isinstance(record.get('date'), date):
        record['date'] = record['date'].isoformat()
    return record


class DataSource(ABC):
    """Accès en lecture aux transactions, budgets et catégories d'une période"""

    @abstractmethod
    def fetch_transactions(self, month: int, year: int) -> List[Dict]:
        ...

    @abstractmethod
    def fetch_budgets(self, month: int, year: int) -> List[Dict]:
        ...

    @abstractmethod
    def fetch_categories(self) -> List[Dict]:
        ...


class SQLDataSource(DataSource):
    def __init__(self, db: Session):
        self.db = db

    def fetch_transactions(self, month: int, year: int) -> List[Dict]:
        start, end = period_bounds(month, year)
        return [to_record(t, TRANSACTION_FIELDS) for t in crud.get_transactions_between(self.db, start, end)]

    def fetch_budgets(self, month: int, year: int) -> List[Dict]:
        return [to_record(b, BUDGET_FIELDS) for b in crud.get_all_budgets(self.db, month, year)]

    def fetch_categories(self) -> List[Dict]:
        return [to_record(c, CATEGORY_FIELDS) for c in crud.get_all_categories(self.db)]


MOCK_TRANSACTIONS = [
    {'id': 1, 'title': 'Salary', 'amount': 3000, 'type': 'income', 'category': 'Salary',
     'date': '2025-04-01', 'description': 'Monthly salary payment', 'notes': None},
    {'id': 2, 'title': 'Rent', 'amount': 1200, 'type': 'expense', 'category': 'Housing',
     'date': '2025-04-05', 'description': 'Monthly rent payment', 'notes': None},
    {'id': 3, 'title': 'Groceries', 'amount': 150, 'type': 'expense', 'category': 'Food',
     'date': '2025-04-10', 'description': 'Weekly grocery shopping', 'notes': None},
    {'id': 4, 'title': 'Freelance Work', 'amount': 500, 'type': 'income', 'category': 'Freelance',
     'date': '2025-04-15', 'description': 'Website development project', 'notes': None},
    {'id': 5, 'title': 'Bus pass', 'amount': 210, 'type': 'expense', 'category': 'Transportation',
     'date': '2025-04-18', 'description': 'Monthly transit pass', 'notes': None},
    {'id': 6, 'title': 'Cinema', 'amount': 150, 'type': 'expense', 'category': 'Entertainment',
     'date': '2025-04-22', 'description': 'Movies and snacks', 'notes': None},
    {'id': 7, 'title': 'Salary', 'amount': 3000, 'type': 'income', 'category': 'Salary',
     'date': '2025-03-01', 'description': 'Monthly salary payment', 'notes': None},
    {'id': 8, 'title': 'Rent', 'amount': 1200, 'type': 'expense', 'category': 'Housing',
     'date': '2025-03-05', 'description': 'Monthly rent payment', 'notes': None},
    {'id': 9, 'title': 'Groceries', 'amount': 380, 'type': 'expense', 'category': 'Food',
     'date': '2025-03-12', 'description': 'Grocery shopping', 'notes': None},
]

MOCK_BUDGETS = [
    {'id': 1, 'category': 'Food', 'amount': 500, 'month': 4, 'year': 2025},
    {'id': 2, 'category': 'Housing', 'amount': 1500, 'month': 4, 'year': 2025},
    {'id': 3, 'category': 'Transportation', 'amount': 300, 'month': 4, 'year': 2025},
    {'id': 4, 'category': 'Entertainment', 'amount': 200, 'month': 4, 'year': 2025},
]

MOCK_CATEGORIES = [
    {'id': 1, 'name': 'Salary', 'type': 'income', 'icon': 'wallet', 'color': '#4CAF50'},
    {'id': 2, 'name': 'Freelance', 'type': 'income', 'icon': 'laptop', 'color': '#27ae60'},
    {'id': 3, 'name': 'Housing', 'type': 'expense', 'icon': 'home', 'color': '#2196F3'},
    {'id': 4, 'name': 'Food', 'type': 'expense', 'icon': 'utensils', 'color': '#FF9800'},
    {'id': 5, 'name': 'Transportation', 'type': 'expense', 'icon': 'car', 'color': '#9C27B0'},
    {'id': 6, 'name': 'Entertainment', 'type': 'expense', 'icon': 'film', 'color': '#F44336'},
]


class MockDataSource(DataSource):
    """Données de démonstration, sans base de données"""

    def __init__(self, transactions=None, budgets=None, categories=None):
        self.transactions = MOCK_TRANSACTIONS if transactions is None else transactions
        self.budgets = MOCK_BUDGETS if budgets is None else budgets
        self.categories = MOCK_CATEGORIES if categories is None else categories

    def fetch_transactions(self, month: int, year: int) -> List[Dict]:
        transactions = []
        for t in self.transactions:
            try:
                if not in_period(t.get('date'), month, year):
                    continue
            except MalformedRecordError as e:
                logger.warning(f"Transaction de démo ignorée ({t.get('id', '?')}): {e}")
                continue
            transactions.append(dict(t))
        return transactions

    def fetch_budgets(self, month: int, year: int) -> List[Dict]:
        return [dict(b) for b in self.budgets if b.get('month') == month and b.get('year') == year]

    def fetch_categories(self) -> List[Dict]:
        return sorted((dict(c) for c in self.categories), key=lambda c: c.get('name') or '')
