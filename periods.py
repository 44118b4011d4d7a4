from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings

MONTH_LABELS: dict[int, str] = {
    1: "Janeiro",
    2: "Fevereiro",
    3: "Março",
    4: "Abril",
    5: "Maio",
    6: "Junho",
    7: "Julho",
    8: "Agosto",
    9: "Setembro",
    10: "Outubro",
    11: "Novembro",
    12: "Dezembro",
}


@dataclass(frozen=True, order=True)
class MonthPeriod:
    """An accounting period. Ordering is chronological (year, then month)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int):
            raise ValueError("Month must be an integer")
        if isinstance(self.year, bool) or not isinstance(self.year, int):
            raise ValueError("Year must be an integer")
        if not 1 <= self.month <= 12:
            raise ValueError("Month must be between 1 and 12")

    def shift(self, months: int) -> "MonthPeriod":
        month_index = (self.year * 12) + (self.month - 1) + months
        return MonthPeriod(year=month_index // 12, month=(month_index % 12) + 1)

    @property
    def label(self) -> str:
        return f"{MONTH_LABELS[self.month]} {self.year}"

    def as_dict(self) -> dict[str, object]:
        return {"month": self.month, "year": self.year, "label": self.label}


def local_today() -> date:
    settings = get_settings()
    tz = ZoneInfo(settings.timezone)
    return datetime.now(tz).date()


def current_period(today: Optional[date] = None) -> MonthPeriod:
    today = today or local_today()
    return MonthPeriod(year=today.year, month=today.month)


def resolve_period(
    month: Optional[str],
    year: Optional[str],
    *,
    today: Optional[date] = None,
) -> MonthPeriod:
    fallback = current_period(today)
    try:
        month_value = int(month) if month else fallback.month
        year_value = int(year) if year else fallback.year
    except ValueError as exc:
        raise ValueError("Month and year must be integers") from exc
    return MonthPeriod(year=year_value, month=month_value)


def year_choices(today: Optional[date] = None, *, back: int = 5, ahead: int = 4) -> list[int]:
    current = (today or local_today()).year
    return list(range(current - back, current + ahead + 1))
