from datetime import date

from config import settings
from database.models import TransactionModel


def add_transaction(client, **overrides):
    payload = {
        'description': 'Groceries',
        'amount': 150,
        'type': 'expense',
        'category': 'Food',
        'date': '2025-04-10',
    }
    payload.update(overrides)
    response = client.post('/api/transactions', json=payload)
    assert response.status_code == 201
    return response.json()['transaction']


def test_root(client):
    assert client.get('/').json() == {'message': 'Personal Finance API'}


def test_statistics_for_period(client):
    add_transaction(client, description='Salary', amount=3000, type='income', category='Salary', date='2025-04-01')
    add_transaction(client, description='Rent', amount=1200, category='Housing', date='2025-04-30')
    add_transaction(client, description='Next month', amount=99, date='2025-05-01')
    client.post('/api/budgets', json={'category': 'Housing', 'amount': 1500, 'month': 4, 'year': 2025})

    data = client.get('/api/statistics', params={'month': 4, 'year': 2025}).json()
    assert data['summary'] == {'totalIncome': 3000, 'totalExpense': -1200, 'balance': 1800}
    assert data['budgetComparison'] == [{'category': 'Housing', 'budgeted': 1500, 'spent': 1200}]
    assert data['recentTransactions'][0]['description'] == 'Rent'


def test_statistics_rejects_invalid_month(client):
    assert client.get('/api/statistics', params={'month': 13, 'year': 2025}).status_code == 422


def test_transaction_crud(client):
    created = add_transaction(client)
    transaction_id = created['id']

    response = client.put(f'/api/transactions/{transaction_id}', json={'amount': 175.5})
    assert response.status_code == 200
    assert response.json()['transaction']['amount'] == 175.5

    assert client.get(f'/api/transactions/{transaction_id}').status_code == 200
    assert client.delete(f'/api/transactions/{transaction_id}').status_code == 200
    assert client.get(f'/api/transactions/{transaction_id}').status_code == 404
    assert client.delete(f'/api/transactions/{transaction_id}').status_code == 404


def test_transaction_validation(client):
    response = client.post('/api/transactions', json={
        'description': 'x', 'amount': 1, 'type': 'transfer', 'date': '2025-04-01'
    })
    assert response.status_code == 422


def test_transaction_filters_and_pagination(client):
    for day in range(1, 6):
        add_transaction(client, date=f'2025-04-{day:02d}')
    add_transaction(client, description='Salary', amount=3000, type='income', category='Salary')

    data = client.get('/api/transactions', params={'type': 'expense', 'limit': 2, 'page': 2}).json()
    assert len(data['transactions']) == 2
    assert data['pagination'] == {
        'totalItems': 5,
        'totalPages': 3,
        'currentPage': 2,
        'hasNextPage': True,
        'hasPrevPage': True,
    }

    data = client.get('/api/transactions', params={'startDate': '2025-04-02', 'endDate': '2025-04-03'}).json()
    assert data['pagination']['totalItems'] == 2


def test_budget_upsert_on_natural_key(client):
    first = client.post('/api/budgets', json={'category': 'Food', 'amount': 400, 'month': 4, 'year': 2025}).json()
    second = client.post('/api/budgets', json={'category': 'Food', 'amount': 500, 'month': 4, 'year': 2025}).json()
    assert first['budget']['id'] == second['budget']['id']

    budgets = client.get('/api/budgets', params={'month': 4, 'year': 2025}).json()['budgets']
    assert len(budgets) == 1
    assert budgets[0]['amount'] == 500


def test_budget_validation(client):
    response = client.post('/api/budgets', json={'category': 'Food', 'amount': -1, 'month': 4, 'year': 2025})
    assert response.status_code == 422
    response = client.post('/api/budgets', json={'category': 'Food', 'amount': 10, 'month': 4, 'year': 1999})
    assert response.status_code == 422


def test_budget_update_conflict_and_delete(client):
    client.post('/api/budgets', json={'category': 'Food', 'amount': 400, 'month': 4, 'year': 2025})
    other = client.post('/api/budgets', json={'category': 'Food', 'amount': 300, 'month': 5, 'year': 2025}).json()
    budget_id = other['budget']['id']

    assert client.put(f'/api/budgets/{budget_id}', json={'month': 4}).status_code == 400
    assert client.put(f'/api/budgets/{budget_id}', json={'amount': 350}).json()['budget']['amount'] == 350
    assert client.delete(f'/api/budgets/{budget_id}').status_code == 200
    assert client.get(f'/api/budgets/{budget_id}').status_code == 404


def test_budget_summary(client):
    add_transaction(client, amount=1200, category='Housing', date='2025-04-05')
    client.post('/api/budgets', json={'category': 'Housing', 'amount': 1000, 'month': 4, 'year': 2025})
    client.post('/api/budgets', json={'category': 'Food', 'amount': 0, 'month': 4, 'year': 2025})

    data = client.get('/api/budgets/summary', params={'month': 4, 'year': 2025}).json()
    housing, food = data['summary']
    assert housing['status'] == 'danger'
    assert housing['percentage'] == 100
    assert housing['message'] == 'Overspent by $200.00'
    assert food['percentage'] == 0


def test_category_crud_without_cascade(client):
    response = client.post('/api/categories', json={'name': ' Pets ', 'type': 'expense'})
    assert response.status_code == 201
    category = response.json()['category']
    assert category['name'] == 'Pets'
    assert category['color'] == '#3498db'

    assert client.post('/api/categories', json={'name': 'Pets'}).status_code == 400

    add_transaction(client, category='Pets')
    assert client.delete(f"/api/categories/{category['id']}").status_code == 200

    stats = client.get('/api/statistics', params={'month': 4, 'year': 2025}).json()
    assert 'Pets' in stats['categories']


def test_categories_sorted_by_name(client):
    client.post('/api/categories', json={'name': 'Zoo'})
    client.post('/api/categories', json={'name': 'Art'})
    names = [c['name'] for c in client.get('/api/categories').json()['categories']]
    assert names == ['Art', 'Zoo']


def test_reports_endpoint(client):
    add_transaction(client, description='Salary', amount=2000, type='income', category='Salary', date='2025-03-01')
    add_transaction(client, amount=400, date='2025-03-10')
    add_transaction(client, description='Salary', amount=2000, type='income', category='Salary', date='2025-04-01')
    add_transaction(client, amount=500, date='2025-04-10')

    data = client.get('/api/reports', params={
        'startMonth': 3, 'startYear': 2025, 'endMonth': 4, 'endYear': 2025
    }).json()
    assert [m['expenses'] for m in data['monthlyData']] == [400, 500]
    assert data['totals'] == {'totalIncome': 4000, 'totalExpenses': 900, 'netIncome': 3100}
    titles = [i['title'] for i in data['insights']]
    assert titles == ['Savings Rate', 'Monthly Expense Trend', 'Top Expense Category']


def test_reports_rejects_inverted_range(client):
    response = client.get('/api/reports', params={
        'startMonth': 5, 'startYear': 2025, 'endMonth': 4, 'endYear': 2025
    })
    assert response.status_code == 400


def test_demo_mode_serves_mock_data(client, monkeypatch):
    monkeypatch.setattr(settings, 'IS_DEMO', True)
    data = client.get('/api/statistics', params={'month': 4, 'year': 2025}).json()
    assert data['summary']['totalIncome'] == 3500
    assert len(data['budgetComparison']) == 4


def test_transaction_rejects_empty_category(client):
    response = client.post('/api/transactions', json={
        'description': 'x', 'amount': 1, 'type': 'expense', 'category': '', 'date': '2025-04-01'
    })
    assert response.status_code == 422

    created = add_transaction(client)
    assert client.put(f"/api/transactions/{created['id']}", json={'category': ''}).status_code == 422


def test_statistics_balance_exact_for_cent_amounts(client):
    add_transaction(client, description='Refund', amount=0.1, type='income', category='Gift')
    add_transaction(client, description='Refund', amount=0.2, type='income', category='Gift')
    add_transaction(client, description='Gum', amount=0.1)

    summary = client.get('/api/statistics', params={'month': 4, 'year': 2025}).json()['summary']
    assert summary == {'totalIncome': 0.3, 'totalExpense': -0.1, 'balance': 0.2}


def test_statistics_skip_rows_with_null_fields(client, db_session):
    add_transaction(client, amount=40, date='2025-04-03')
    db_session.add_all([
        TransactionModel(description='No type', amount=25, category='Food', type=None, date=date(2025, 4, 4)),
        TransactionModel(description='No amount', amount=None, category='Food', type='expense', date=date(2025, 4, 5)),
    ])
    db_session.commit()
    client.post('/api/budgets', json={'category': 'Food', 'amount': 100, 'month': 4, 'year': 2025})

    response = client.get('/api/statistics', params={'month': 4, 'year': 2025})
    assert response.status_code == 200
    assert response.json()['summary']['totalExpense'] == -40
    assert response.json()['transactionCount'] == 1

    response = client.get('/api/budgets/summary', params={'month': 4, 'year': 2025})
    assert response.status_code == 200
    assert response.json()['summary'][0]['spent'] == 40

    response = client.get('/api/reports', params={'startMonth': 4, 'startYear': 2025, 'endMonth': 4, 'endYear': 2025})
    assert response.status_code == 200


def test_statistics_trends_against_previous_month(client, monkeypatch):
    monkeypatch.setattr(settings, 'IS_DEMO', True)
    trends = client.get('/api/statistics', params={'month': 4, 'year': 2025}).json()['trends']
    assert trends == {
        'incomeGrowth': 16.7,
        'expenseGrowth': 8.2,
        'topExpenseCategory': 'Housing',
        'topIncomeCategory': 'Salary',
    }


def test_statistics_trends_without_previous_month(client):
    add_transaction(client, amount=80, category='Food', date='2025-04-02')
    trends = client.get('/api/statistics', params={'month': 4, 'year': 2025}).json()['trends']
    assert trends == {'topExpenseCategory': 'Food'}


def test_category_blank_name_rejected(client):
    category = client.post('/api/categories', json={'name': 'Pets'}).json()['category']

    assert client.post('/api/categories', json={'name': '   '}).status_code == 422
    assert client.put(f"/api/categories/{category['id']}", json={'name': '   '}).status_code == 422

    response = client.get('/api/categories')
    assert response.status_code == 200
    assert [c['name'] for c in response.json()['categories']] == ['Pets']


def test_budget_category_update(client):
    food = client.post('/api/budgets', json={'category': 'Food', 'amount': 400, 'month': 4, 'year': 2025}).json()
    client.post('/api/budgets', json={'category': 'Housing', 'amount': 1500, 'month': 4, 'year': 2025})
    budget_id = food['budget']['id']

    response = client.put(f'/api/budgets/{budget_id}', json={'category': 'Groceries'})
    assert response.status_code == 200
    assert response.json()['budget']['category'] == 'Groceries'

    assert client.put(f'/api/budgets/{budget_id}', json={'category': 'Housing'}).status_code == 400
    assert client.put(f'/api/budgets/{budget_id}', json={'category': ''}).status_code == 422
    assert client.get(f'/api/budgets/{budget_id}').json()['budget']['category'] == 'Groceries'
