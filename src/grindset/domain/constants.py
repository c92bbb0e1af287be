"""Centralized constants for grindset.

All magic numbers and configuration defaults live here so every layer
imports from a single source of truth.
"""

# ---------- SM-2 ----------
DEFAULT_INTERVAL = 1
DEFAULT_REPETITION = 0
DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
PASSING_QUALITY = 3
MAX_QUALITY = 5
SECOND_INTERVAL = 6  # days, after the second successful recall

# ---------- Grind sessions ----------
STALENESS_THRESHOLD_HOURS = 24
MIN_SESSION_MINUTES = 1
SESSION_FETCH_LIMIT = 50

# ---------- Power level ----------
POWER_LEVEL_MINUTES_PER_POINT = 10
POWER_LEVEL_MAX_SCORE = 100

# ---------- Remote store / HTTP ----------
REQUEST_TIMEOUT = 30.0
