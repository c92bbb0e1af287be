import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward +infinity.

    Python's round() uses banker's rounding (round(16.5) == 16); intervals,
    durations and scores round halves up.
    """
    return int(math.floor(value + 0.5))
