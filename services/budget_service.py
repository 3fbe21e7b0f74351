import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping

from config import settings
from services.aggregation_service import MalformedRecordError, ZERO, budget_fields, money, to_decimal

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 75
DANGER_THRESHOLD = 100


def format_currency(amount, symbol: str = None) -> str:
    """Formate un montant: 1234.5 -> $1,234.50, -20 -> -$20.00"""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    amount = money(amount)
    sign = '-' if amount < 0 else ''
    return f"{sign}{symbol}{abs(amount):,.2f}"


class BudgetService:
    """Statut de consommation des budgets (success / warning / danger)"""

    def __init__(self, warning_threshold: int = WARNING_THRESHOLD, danger_threshold: int = DANGER_THRESHOLD):
        self.warning_threshold = warning_threshold
        self.danger_threshold = danger_threshold

    def budget_status(self, amount, spent) -> Dict:
        """
        Classe un budget selon le pourcentage consommé

        Le pourcentage affiché est plafonné à 100, le dépassement réel est
        renvoyé à part (rawPercentage, overspent). Un budget à 0 vaut 0%.
        """
        amount = to_decimal(amount)
        spent = to_decimal(spent)
        if amount > 0:
            raw_percentage = int((spent / amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
        else:
            raw_percentage = 0
        percentage = min(raw_percentage, 100)
        remaining = max(ZERO, money(amount - spent))
        overspent = max(ZERO, money(spent - amount))

        if raw_percentage >= self.danger_threshold:
            status = 'danger'
            message = f"Overspent by {format_currency(spent - amount)}"
        elif raw_percentage >= self.warning_threshold:
            status = 'warning'
            message = f"{format_currency(remaining)} remaining"
        else:
            status = 'success'
            message = f"{format_currency(remaining)} remaining"

        return {
            'status': status,
            'percentage': percentage,
            'rawPercentage': raw_percentage,
            'remaining': remaining,
            'overspent': overspent,
            'message': message
        }

    def budget_summary(self, budgets: Iterable[Mapping], statistics: Mapping) -> List[Dict]:
        """Une ligne par budget: prévu, dépensé, reste, dépassement et statut"""
        categories = statistics.get('categories', {})
        summary = []
        for budget in budgets:
            try:
                category, amount = budget_fields(budget)
            except MalformedRecordError as e:
                logger.warning(f"Budget ignoré ({budget.get('id', '?')}): {e}")
                continue

            spent = categories.get(category, {}).get('expense', ZERO)
            row = {
                'id': budget.get('id'),
                'category': category,
                'budgeted': money(amount),
                'spent': money(spent),
            }
            row.update(self.budget_status(amount, spent))
            summary.append(row)
        return summary
