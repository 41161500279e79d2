# backend/lib/eleca_core/constants.py
"""
Tuning tables for the billing engine.

Calculation code reads every calibrated number from here, so a value can be
changed (and tested) without touching the calculation logic.
"""
from typing import Dict, Tuple

CATEGORIES = ("lighting", "cooling", "heating", "electronics", "motor")
ENERGY_MODES = ("standard", "bee_annual", "iseer", "eer")
SEASONS = ("summer", "winter", "monsoon")
SUBSIDY_TYPES = ("none", "government", "company")
AC_TYPES = ("inverter", "non_inverter")

# Usage scaling per category and season. Only cooling and heating react to the
# season; cooling swings the most.
SEASONAL_MULTIPLIERS: Dict[str, Dict[str, float]] = {
    "cooling": {"summer": 1.2, "monsoon": 0.9, "winter": 0.5},
    "heating": {"summer": 0.7, "monsoon": 0.9, "winter": 1.2},
    "lighting": {"summer": 1.0, "monsoon": 1.0, "winter": 1.0},
    "electronics": {"summer": 1.0, "monsoon": 1.0, "winter": 1.0},
    "motor": {"summer": 1.0, "monsoon": 1.0, "winter": 1.0},
}

# Rooftop solar yield for Indian conditions: ~4 kWh per installed kW per day.
SOLAR_KWH_PER_KW_PER_DAY = 4.0
SOLAR_DAYS_PER_MONTH = 30

# One refrigeration ton delivers 3.517 kW of cooling. ISEER and EER are
# cooling-out / electricity-in ratios (W/W).
KW_PER_TON_OF_COOLING = 3.517

# (exclusive upper bound on monthly units, grade); anything above the last
# bound gets FALLBACK_GRADE.
EFFICIENCY_BANDS: Tuple[Tuple[float, str], ...] = (
    (150.0, "A"),
    (300.0, "B"),
    (450.0, "C"),
    (600.0, "D"),
)
FALLBACK_GRADE = "E"

TOP_CONSUMERS_COUNT = 3

# Daily log aggregation
BASELINE_DAYS_PER_MONTH = 30
STABILIZED_AFTER_DAYS = 7
CONFIDENCE_MIN_DAYS = 10
CONFIDENCE_BASE = 65.0
CONFIDENCE_SPAN = 35.0
CONFIDENCE_CAP = 99.0
WARNING_RATIO = 0.85

STATUS_SAFE = "safe"
STATUS_WARNING = "warning"
STATUS_CRITICAL = "critical"
