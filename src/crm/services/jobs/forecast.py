# src/crm/services/jobs/forecast.py
"""
Forecast aggregation.

Categories nest: everything in commit is also best case, everything in best
case is also pipeline. Unknown categories are counted as pipeline only.
"""

import calendar
from datetime import date, datetime
from typing import Iterable

from ...models import ForecastCategory, ForecastData, Opportunity, PeriodWindow


def current_period(now: datetime) -> PeriodWindow:
    """The calendar month containing `now`."""
    today = now.date()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return PeriodWindow(
        start=date(today.year, today.month, 1),
        end=date(today.year, today.month, last_day),
    )


def aggregate_forecast(opportunities: Iterable[Opportunity]) -> ForecastData:
    forecast = ForecastData()

    for opp in opportunities:
        amount = opp.amount or 0.0

        if opp.forecast_category == ForecastCategory.COMMIT.value:
            forecast.commit += amount
            forecast.best_case += amount
            forecast.pipeline += amount
        elif opp.forecast_category == ForecastCategory.BEST_CASE.value:
            forecast.best_case += amount
            forecast.pipeline += amount
        else:
            forecast.pipeline += amount

    return forecast
