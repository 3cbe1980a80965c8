# utils/helpers.py
from datetime import date
import logging
from typing import Union, Optional

from ..constants import MONEY_PLACES, QTY_PLACES

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def weekday_name(iso_date: str) -> str:
    """'2025-01-06' -> 'Monday'."""
    return date.fromisoformat(iso_date).strftime("%A")


def round_money(x: float) -> float:
    # + 0.0 folds -0.0 into 0.0
    return round(float(x), MONEY_PLACES) + 0.0


def round_qty(x: float) -> float:
    return round(float(x), QTY_PLACES) + 0.0


def fmt_money(
    v: NumberLike,
    places: int = 2,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format a number as money with thousands separators and a fixed number of decimals.

    Behavior on parse failure:
      - By default (strict=False, sentinel=None), returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError on parse failures.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
