"""
Moteur d'agrégation mensuelle

Transforme une liste de transactions (et de budgets) en résumé
revenus/dépenses, ventilation par catégorie et comparaison budget/réel.

Convention de signe: le champ `type` fait foi. Les montants sont pris en
valeur absolue puis classés par type. Les cumuls par catégorie et le
`spent` des budgets sont des montants positifs, alors que
`summary.totalExpense` est négatif (balance = revenus + dépenses).

Les montants sont des Decimal arrondis au centime.
"""
import calendar
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = ('income', 'expense')
DEFAULT_RECENT_LIMIT = 5

ZERO = Decimal('0.00')
CENT = Decimal('0.01')
TENTH = Decimal('0.1')


class MalformedRecordError(ValueError):
    """Enregistrement inexploitable (champ requis absent ou invalide)"""


def to_decimal(value) -> Decimal:
    """Convertit un montant (Decimal, int, float, str) en Decimal fini"""
    if isinstance(value, bool) or value is None:
        raise MalformedRecordError(f"montant invalide: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise MalformedRecordError(f"montant invalide: {value!r}")
    if not amount.is_finite():
        raise MalformedRecordError(f"montant invalide: {value!r}")
    return amount


def money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_change(current, previous) -> Optional[Decimal]:
    """(current - previous) / previous * 100 au dixième, None si previous vaut 0"""
    previous = to_decimal(previous)
    if not previous:
        return None
    change = (to_decimal(current) - previous) / previous * 100
    return change.quantize(TENTH, rounding=ROUND_HALF_UP)


def period_bounds(month: int, year: int) -> Tuple[date, date]:
    """Premier et dernier jour du mois (bornes incluses)"""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_period(month: int, year: int) -> Tuple[int, int]:
    return (12, year - 1) if month == 1 else (month - 1, year)


def parse_date(value) -> date:
    """Accepte date, datetime ou chaîne ISO (YYYY-MM-DD[...])"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise MalformedRecordError(f"date invalide: {value!r}")


def in_period(value, month: int, year: int) -> bool:
    start, end = period_bounds(month, year)
    return start <= parse_date(value) <= end


def _normalize_transaction(transaction: Mapping) -> Dict:
    """Valide une transaction et renvoie sa forme normalisée (montant absolu)"""
    for field in ('amount', 'category', 'type', 'date'):
        if transaction.get(field) is None:
            raise MalformedRecordError(f"champ requis manquant: {field}")

    tx_type = transaction['type']
    if tx_type not in TRANSACTION_TYPES:
        raise MalformedRecordError(f"type inconnu: {tx_type!r}")

    category = transaction['category']
    if not isinstance(category, str) or not category:
        raise MalformedRecordError(f"catégorie invalide: {category!r}")

    return {
        'type': tx_type,
        'category': category,
        'amount': abs(to_decimal(transaction['amount'])),
        'date': parse_date(transaction['date']),
    }


def budget_fields(budget: Mapping) -> Tuple[str, Decimal]:
    """Catégorie et montant d'un budget, MalformedRecordError sinon"""
    category = budget.get('category')
    if not isinstance(category, str) or not category:
        raise MalformedRecordError("budget sans catégorie")
    if budget.get('amount') is None:
        raise MalformedRecordError("budget sans montant")
    return category, to_decimal(budget['amount'])


def _serialize_transaction(transaction: Mapping, tx_date: date) -> Dict:
    item = dict(transaction)
    item['date'] = tx_date.isoformat()
    return item


def aggregate(
    transactions: Iterable[Mapping],
    budgets: Optional[Iterable[Mapping]],
    month: int,
    year: int,
    recent_limit: int = DEFAULT_RECENT_LIMIT
) -> Dict:
    """
    Calcule les statistiques d'une période mensuelle

    Args:
        transactions: transactions de la période (un sur-ensemble est accepté,
            il est filtré sur le mois calendaire, bornes incluses)
        budgets: budgets de la même période
        month: mois 1-12
        year: année
        recent_limit: nombre de transactions récentes à renvoyer

    Returns:
        Dict avec summary, categories, categoryTotals, recentTransactions,
        budgetComparison et period
    """
    start, end = period_bounds(month, year)

    total_income = Decimal(0)
    total_expense = Decimal(0)
    categories: Dict[str, Dict[str, Decimal]] = {}
    in_range = []
    skipped = 0

    for transaction in transactions:
        try:
            normalized = _normalize_transaction(transaction)
        except MalformedRecordError as e:
            skipped += 1
            logger.warning(f"Transaction ignorée ({transaction.get('id', '?')}): {e}")
            continue

        if not start <= normalized['date'] <= end:
            continue

        bucket = categories.setdefault(normalized['category'], {'income': Decimal(0), 'expense': Decimal(0)})
        bucket[normalized['type']] += normalized['amount']
        if normalized['type'] == 'income':
            total_income += normalized['amount']
        else:
            total_expense += normalized['amount']
        in_range.append((normalized['date'], transaction))

    if skipped:
        logger.info(f"{skipped} transaction(s) malformée(s) ignorée(s) pour {month:02d}/{year}")

    categories = {
        name: {'income': money(bucket['income']), 'expense': money(bucket['expense'])}
        for name, bucket in categories.items()
        if bucket['income'] or bucket['expense']
    }

    category_totals = [
        {'category': name, 'total': bucket['income'] - bucket['expense']}
        for name, bucket in categories.items()
    ]

    # Tri stable: à date égale, l'ordre d'entrée est conservé
    in_range.sort(key=lambda item: item[0], reverse=True)
    recent = [_serialize_transaction(t, d) for d, t in in_range[:recent_limit]]

    # La balance est calculée sur les totaux arrondis
    income = money(total_income)
    expense = money(total_expense)
    summary = {
        'totalIncome': income,
        'totalExpense': -expense if expense else ZERO,
        'balance': income - expense,
    }

    result = {
        'period': {
            'month': month,
            'year': year,
            'startDate': start.isoformat(),
            'endDate': end.isoformat(),
        },
        'summary': summary,
        'categories': categories,
        'categoryTotals': category_totals,
        'recentTransactions': recent,
        'budgetComparison': compare_budgets(budgets or [], categories),
        'transactionCount': len(in_range),
    }
    rate = savings_rate(income, expense)
    if rate is not None:
        result['savingsRate'] = rate
    return result


def compare_budgets(budgets: Iterable[Mapping], categories: Mapping[str, Mapping]) -> List[Dict]:
    """Budget prévu contre dépense réelle, une entrée par budget"""
    comparison = []
    for budget in budgets:
        try:
            category, amount = budget_fields(budget)
        except MalformedRecordError as e:
            logger.warning(f"Budget ignoré ({budget.get('id', '?')}): {e}")
            continue
        spent = categories.get(category, {}).get('expense', ZERO)
        comparison.append({
            'category': category,
            'budgeted': money(amount),
            'spent': money(spent),
        })
    return comparison


def savings_rate(income, expense) -> Optional[Decimal]:
    """(revenus - dépenses) / revenus * 100, None si pas de revenus"""
    income = to_decimal(income)
    if not income:
        return None
    rate = (income - abs(to_decimal(expense))) / income * 100
    return rate.quantize(TENTH, rounding=ROUND_HALF_UP)


def _breakdown(categories: Mapping[str, Mapping], kind: str) -> List[Dict]:
    items = [
        {'category': name, kind: bucket.get(kind, ZERO)}
        for name, bucket in categories.items()
        if bucket.get(kind, ZERO) > 0
    ]
    return sorted(items, key=lambda x: x[kind], reverse=True)


def expense_breakdown(categories: Mapping[str, Mapping]) -> List[Dict]:
    """Dépenses par catégorie, de la plus grosse à la plus petite"""
    return _breakdown(categories, 'expense')


def income_breakdown(categories: Mapping[str, Mapping]) -> List[Dict]:
    return _breakdown(categories, 'income')
