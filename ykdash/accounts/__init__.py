from ykdash.accounts.models import TOUCH_REQUIRED, Account
from ykdash.accounts.parser import parse_codes, parse_line, parse_periods, parse_touch_output
from ykdash.accounts.reconciler import reconcile, reconcile_one


__all__ = [
    "TOUCH_REQUIRED",
    "Account",
    "parse_codes",
    "parse_line",
    "parse_periods",
    "parse_touch_output",
    "reconcile",
    "reconcile_one",
]
