# backend/lib/eleca_core/energy.py
"""
Appliance energy model: one appliance + season -> monthly kWh.

The engine trusts range checks done by the caller (hours <= 24, days <= 31)
but refuses negative values and missing rating fields, since a silent zero
would under-report consumption.
"""
import math
from typing import Dict, Optional

from .constants import (
    CATEGORIES,
    ENERGY_MODES,
    KW_PER_TON_OF_COOLING,
    SEASONAL_MULTIPLIERS,
    SEASONS,
)
from .errors import ValidationError
from .models import Appliance

_RATIO_FIELD = {"iseer": "iseer", "eer": "eer"}


def _non_negative(value, field_name: str) -> float:
    if value is None:
        raise ValidationError(f"{field_name} is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    if math.isnan(value) or value < 0:
        raise ValidationError(f"{field_name} must be >= 0, got {value!r}")
    return float(value)


def _positive(value, field_name: str) -> float:
    number = _non_negative(value, field_name)
    if number == 0:
        raise ValidationError(f"{field_name} must be > 0")
    return number


def validate_appliance(appliance: Appliance) -> None:
    """Raise ValidationError unless the fields `input_mode` relies on are usable."""
    where = f"appliance {appliance.id!r}"
    if appliance.category not in CATEGORIES:
        raise ValidationError(f"{where}: unknown category {appliance.category!r}")
    if appliance.input_mode not in ENERGY_MODES:
        raise ValidationError(f"{where}: unknown input mode {appliance.input_mode!r}")

    _non_negative(appliance.hours_per_day, f"{where}: hours_per_day")
    _non_negative(appliance.days_per_month, f"{where}: days_per_month")
    _non_negative(appliance.quantity, f"{where}: quantity")

    mode = appliance.input_mode
    if mode == "standard":
        _non_negative(appliance.watts, f"{where}: watts")
    elif mode == "bee_annual":
        _non_negative(appliance.annual_units, f"{where}: annual_units")
    else:
        _positive(appliance.capacity_ton, f"{where}: capacity_ton")
        _positive(getattr(appliance, _RATIO_FIELD[mode]), f"{where}: {mode}")


def seasonal_multiplier(category: str, season: str,
                        multipliers: Dict[str, Dict[str, float]] = SEASONAL_MULTIPLIERS) -> float:
    if season not in SEASONS:
        raise ValidationError(f"unknown season {season!r}")
    try:
        return multipliers[category][season]
    except KeyError:
        raise ValidationError(f"no seasonal multiplier for {category!r}/{season!r}") from None


def rating_value(appliance: Appliance) -> float:
    """The number the appliance is rated by in its own mode (W, kWh/yr, ISEER or EER)."""
    validate_appliance(appliance)
    mode = appliance.input_mode
    if mode == "standard":
        return float(appliance.watts)
    if mode == "bee_annual":
        return float(appliance.annual_units)
    return float(getattr(appliance, _RATIO_FIELD[mode]))


def appliance_power_kw(appliance: Appliance) -> float:
    """
    Electrical draw of a single unit in kW.

    For ISEER/EER the draw is derived from cooling capacity: a higher ratio
    means less electricity for the same cooling. For BEE annual ratings it is
    the average draw spread over the declared daily hours.
    """
    validate_appliance(appliance)
    mode = appliance.input_mode
    if mode == "standard":
        return appliance.watts / 1000.0
    if mode == "bee_annual":
        if appliance.hours_per_day == 0:
            return 0.0
        return appliance.annual_units / 365.0 / appliance.hours_per_day
    ratio = getattr(appliance, _RATIO_FIELD[mode])
    return appliance.capacity_ton * KW_PER_TON_OF_COOLING / ratio


def compute_monthly_units(appliance: Appliance, season: str,
                          multipliers: Dict[str, Dict[str, float]] = SEASONAL_MULTIPLIERS) -> float:
    """
    Monthly kWh for the appliance (all units of it) in the given season.

    bee_annual ratings are seasonally scaled the same way as standard ones.
    """
    validate_appliance(appliance)
    factor = seasonal_multiplier(appliance.category, season, multipliers)
    mode = appliance.input_mode

    if mode == "bee_annual":
        base = appliance.annual_units / 12.0 * appliance.quantity
    elif mode == "standard":
        base = (appliance.watts * appliance.hours_per_day * appliance.days_per_month
                * appliance.quantity / 1000.0)
    else:
        base = (appliance_power_kw(appliance) * appliance.hours_per_day
                * appliance.days_per_month * appliance.quantity)
    return base * factor


def compute_daily_units(appliance: Appliance, season: str,
                        usage_hours: Optional[float] = None) -> float:
    """kWh for one day of use; `usage_hours` overrides the appliance's daily hours."""
    hours = appliance.hours_per_day if usage_hours is None else usage_hours
    hours = _non_negative(hours, f"appliance {appliance.id!r}: usage_hours")
    factor = seasonal_multiplier(appliance.category, season)
    return appliance_power_kw(appliance) * hours * appliance.quantity * factor
