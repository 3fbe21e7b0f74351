from datetime import date

from database import crud
from database.models import TransactionModel
from models.budget import BudgetCreate
from models.transaction import TransactionCreate
from services.aggregation_service import aggregate
from services.data_source import SQLDataSource


def test_init_default_categories_only_once(db_session):
    assert crud.init_default_categories(db_session) == len(crud.DEFAULT_CATEGORIES)
    assert crud.init_default_categories(db_session) == 0
    assert len(crud.get_all_categories(db_session)) == len(crud.DEFAULT_CATEGORIES)


def test_sql_data_source_fetches_period(db_session):
    for day, month in ((30, 4), (1, 5), (1, 4)):
        crud.create_transaction(db_session, TransactionCreate(
            description='Coffee', amount=3, type='expense', category='Food', date=date(2025, month, day)
        ))
    crud.create_budget(db_session, BudgetCreate(category='Food', amount=50, month=4, year=2025))
    crud.create_budget(db_session, BudgetCreate(category='Food', amount=60, month=5, year=2025))

    source = SQLDataSource(db_session)
    transactions = source.fetch_transactions(4, 2025)
    assert sorted(t['date'] for t in transactions) == ['2025-04-01', '2025-04-30']
    assert [b['amount'] for b in source.fetch_budgets(4, 2025)] == [50]


def test_sql_data_source_returns_raw_rows(db_session):
    crud.create_transaction(db_session, TransactionCreate(
        description='Coffee', amount=3, type='expense', category='Food', date=date(2025, 4, 2)
    ))
    db_session.add(TransactionModel(description='Legacy', amount=7, category='Food', type=None, date=date(2025, 4, 3)))
    db_session.commit()

    transactions = SQLDataSource(db_session).fetch_transactions(4, 2025)
    assert [t['type'] for t in transactions] == ['expense', None]

    result = aggregate(transactions, [], 4, 2025)
    assert result['summary']['totalExpense'] == -3
    assert result['transactionCount'] == 1
