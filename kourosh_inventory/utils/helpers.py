# utils/helpers.py
import logging
from typing import Union, Optional

NumberLike = Union[float, int, str]

_log = logging.getLogger(__name__)


def fmt_money(
    v: NumberLike,
    places: int = 0,
    *,
    strict: bool = False,
    sentinel: Optional[str] = None,
) -> str:
    """
    Format an amount with thousands separators, used in ledger descriptions.

    Prices in this shop are whole currency units, so `places` defaults to 0.

    Behavior on parse failure:
      - By default returns str(v).
      - If `sentinel` is provided (e.g., "N/A"), returns that sentinel instead.
      - If `strict=True`, raises ValueError.
    """
    try:
        x = float(v)
    except (TypeError, ValueError) as e:
        _log.debug("fmt_money: failed to parse %r as float: %s", v, e)
        if strict:
            raise ValueError(f"Could not parse {v!r} as a number.") from e
        return str(sentinel) if sentinel is not None else str(v)
    return f"{x:,.{places}f}"
