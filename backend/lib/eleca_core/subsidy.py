# backend/lib/eleca_core/subsidy.py
import math

from .constants import SUBSIDY_TYPES
from .errors import ValidationError
from .models import SubsidyConfig, SubsidySplit


def validate_subsidy(config: SubsidyConfig) -> None:
    if config.type not in SUBSIDY_TYPES:
        raise ValidationError(f"unknown subsidy type {config.type!r}")
    limit = config.limit_units
    if isinstance(limit, bool) or not isinstance(limit, (int, float)) or math.isnan(limit) or limit < 0:
        raise ValidationError(f"subsidy limit must be a number >= 0, got {limit!r}")


def apply_subsidy(units: float, config: SubsidyConfig) -> SubsidySplit:
    """
    Split `units` into a free (subsidized) part and a billable part.

    The subsidy removes units, not money: the first `limit_units` are free and
    only the remainder goes through the slab tariff.
    """
    validate_subsidy(config)
    if isinstance(units, bool) or not isinstance(units, (int, float)) or math.isnan(units) or units < 0:
        raise ValidationError(f"units must be a number >= 0, got {units!r}")

    if config.type == "none":
        return SubsidySplit(subsidized_units=0.0, billable_units=float(units),
                            remaining_subsidy_units=0.0)

    limit = float(config.limit_units)
    return SubsidySplit(
        subsidized_units=min(float(units), limit),
        billable_units=max(0.0, units - limit),
        remaining_subsidy_units=max(0.0, limit - units),
    )
