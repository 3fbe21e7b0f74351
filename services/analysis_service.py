from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from services.aggregation_service import (
    DEFAULT_RECENT_LIMIT, aggregate, expense_breakdown, income_breakdown,
    money, percent_change, previous_period, savings_rate
)
from services.budget_service import format_currency
from services.data_source import DataSource

class AnalysisService:
    def __init__(self):
        # Seuils des indicateurs (en pourcentage)
        self.savings_thresholds = {
            'good': 20,
            'fair': 10
        }
        self.trend_thresholds = {
            'good': 0,
            'fair': 5
        }

    @staticmethod
    def month_range(start: Tuple[int, int], end: Tuple[int, int]) -> Iterator[Tuple[int, int]]:
        """Itère les (mois, année) de start à end inclus"""
        month, year = start
        end_month, end_year = end
        while year < end_year or (year == end_year and month <= end_month):
            yield month, year
            if month == 12:
                month, year = 1, year + 1
            else:
                month += 1

    def monthly_series(self, data_source: DataSource, start: Tuple[int, int], end: Tuple[int, int]) -> List[Dict]:
        """Une ligne revenus/dépenses/net par mois de la période"""
        series = []
        for month, year in self.month_range(start, end):
            statistics = aggregate(
                data_source.fetch_transactions(month, year),
                [],
                month,
                year
            )
            income = statistics['summary']['totalIncome']
            expenses = abs(statistics['summary']['totalExpense'])
            series.append({
                'month': month,
                'year': year,
                'income': income,
                'expenses': expenses,
                'netIncome': income - expenses
            })
        return series

    @staticmethod
    def period_totals(series: Iterable[Mapping]) -> Dict:
        total_income = Decimal(0)
        total_expenses = Decimal(0)
        for month in series:
            total_income += money(month.get('income', 0))
            total_expenses += money(month.get('expenses', 0))
        return {
            'totalIncome': total_income,
            'totalExpenses': total_expenses,
            'netIncome': total_income - total_expenses
        }

    @staticmethod
    def expense_trend(current, previous) -> Optional[Decimal]:
        """Évolution des dépenses d'un mois sur l'autre, None si le mois précédent est à 0"""
        return percent_change(current, previous)

    @staticmethod
    def top_expense_category(categories: Mapping[str, Mapping]) -> Optional[Dict]:
        breakdown = expense_breakdown(categories)
        return breakdown[0] if breakdown else None

    def _color(self, value: float, thresholds: Dict, higher_is_better: bool) -> str:
        if higher_is_better:
            if value >= thresholds['good']:
                return 'green'
            return 'yellow' if value >= thresholds['fair'] else 'red'
        if value <= thresholds['good']:
            return 'green'
        return 'yellow' if value <= thresholds['fair'] else 'red'

    def generate_insights(self, series: List[Mapping], categories: Mapping[str, Mapping]) -> List[Dict]:
        """
        Génère les indicateurs de la page rapports: taux d'épargne, évolution
        des dépenses et catégorie la plus dépensière
        """
        if not series:
            return []

        insights = []
        totals = self.period_totals(series)

        rate = savings_rate(totals['totalIncome'], totals['totalExpenses'])
        if rate is not None:
            insights.append({
                'title': 'Savings Rate',
                'value': f"{rate:.1f}%",
                'icon': 'piggy-bank',
                'color': self._color(rate, self.savings_thresholds, higher_is_better=True)
            })

        if len(series) >= 2:
            trend = self.expense_trend(series[-1].get('expenses', 0), series[-2].get('expenses', 0))
            if trend is not None:
                insights.append({
                    'title': 'Monthly Expense Trend',
                    'value': f"{'+' if trend > 0 else ''}{trend:.1f}%",
                    'icon': 'arrow-up' if trend > 0 else 'arrow-down',
                    'color': self._color(trend, self.trend_thresholds, higher_is_better=False)
                })

        top = self.top_expense_category(categories)
        if top:
            insights.append({
                'title': 'Top Expense Category',
                'value': f"{top['category']} ({format_currency(top['expense'])})",
                'icon': 'chart-pie',
                'color': 'blue'
            })

        return insights

    def build_report(self, data_source: DataSource, start: Tuple[int, int], end: Tuple[int, int]) -> Dict:
        """
        Rapport complet d'une période: série mensuelle, totaux, ventilation
        des dépenses du dernier mois et indicateurs
        """
        series = self.monthly_series(data_source, start, end)
        end_month, end_year = end
        latest = aggregate(data_source.fetch_transactions(end_month, end_year), [], end_month, end_year)
        categories = latest['categories']
        return {
            'monthlyData': series,
            'totals': self.period_totals(series),
            'categoryBreakdown': expense_breakdown(categories),
            'topExpenseCategory': self.top_expense_category(categories),
            'insights': self.generate_insights(series, categories)
        }

    def trends(self, data_source: DataSource, month: int, year: int, current: Mapping = None) -> Dict:
        """
        Évolution des revenus et dépenses par rapport au mois précédent et
        catégories principales du mois

        Une évolution est omise quand le mois précédent vaut 0, une catégorie
        principale est omise quand le mois n'a aucun mouvement de ce type.
        """
        if current is None:
            current = aggregate(data_source.fetch_transactions(month, year), [], month, year)
        prev_month, prev_year = previous_period(month, year)
        previous = aggregate(data_source.fetch_transactions(prev_month, prev_year), [], prev_month, prev_year)

        result = {}
        growth = {
            'incomeGrowth': (current['summary']['totalIncome'], previous['summary']['totalIncome']),
            'expenseGrowth': (abs(current['summary']['totalExpense']), abs(previous['summary']['totalExpense'])),
        }
        for key, (now, before) in growth.items():
            change = percent_change(now, before)
            if change is not None:
                result[key] = change

        top_expense = expense_breakdown(current['categories'])
        if top_expense:
            result['topExpenseCategory'] = top_expense[0]['category']
        top_income = income_breakdown(current['categories'])
        if top_income:
            result['topIncomeCategory'] = top_income[0]['category']
        return result

    def monthly_statistics(
        self,
        data_source: DataSource,
        month: int,
        year: int,
        recent_limit: int = DEFAULT_RECENT_LIMIT
    ) -> Dict:
        """Statistiques du mois complétées du bloc trends"""
        statistics = aggregate(
            data_source.fetch_transactions(month, year),
            data_source.fetch_budgets(month, year),
            month,
            year,
            recent_limit=recent_limit
        )
        statistics['trends'] = self.trends(data_source, month, year, current=statistics)
        return statistics
