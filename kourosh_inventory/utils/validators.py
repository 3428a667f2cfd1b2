# utils/validators.py
import math


def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)

    Booleans are rejected: True/False are never amounts. So are inf and nan.
    """
    if isinstance(x, bool):
        return False, None
    try:
        val = float(x)
    except (TypeError, ValueError):
        return False, None
    if not math.isfinite(val):
        return False, None
    return True, val


def try_parse_int(x):
    """
    Parse to int only when the value is integral (3, "3", 3.0 ok; 3.5 not).

    Returns:
        (ok: bool, value: int|None)
    """
    ok, val = try_parse_float(x)
    if not ok or val is None or val != int(val):
        return False, None
    return True, int(val)


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_strictly_positive_number(x) -> bool:
    """
    True iff x parses to a float and value > 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val > 0)


def is_positive_int(x) -> bool:
    """
    True iff x is integral and >= 1.
    """
    ok, val = try_parse_int(x)
    return bool(ok and val is not None and val >= 1)
