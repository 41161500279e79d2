# backend/lib/eleca_core/tariff.py
"""
Progressive (slab-wise) tariff billing.

Every unit is charged at the rate of the slab it falls in; crossing into a
higher slab never re-prices the units below it. The fixed charge is always
added, even for zero units.
"""
import math
from typing import List

from .errors import ConfigurationError, ValidationError
from .models import BillBreakdown, SlabCharge, StateTariff


def _is_number(value) -> bool:
    return (not isinstance(value, bool) and isinstance(value, (int, float))
            and not math.isnan(value))


def validate_tariff(tariff: StateTariff) -> None:
    """
    Raise ConfigurationError unless the schedule starts at 0, is contiguous,
    strictly ascending, has non-negative rates and ends in exactly one
    open-ended slab.
    """
    name = f"tariff {tariff.id!r}"
    if not _is_number(tariff.fixed_charge) or tariff.fixed_charge < 0:
        raise ConfigurationError(f"{name}: fixed charge must be >= 0")
    if not tariff.slabs:
        raise ConfigurationError(f"{name}: no slabs defined")

    expected_min = 0.0
    last = len(tariff.slabs) - 1
    for index, slab in enumerate(tariff.slabs):
        if not _is_number(slab.rate) or slab.rate < 0:
            raise ConfigurationError(f"{name}: slab {index} has an invalid rate {slab.rate!r}")
        if not _is_number(slab.min) or slab.min != expected_min:
            raise ConfigurationError(
                f"{name}: slab {index} starts at {slab.min!r}, expected {expected_min!r}"
            )
        if slab.max is None:
            if index != last:
                raise ConfigurationError(f"{name}: only the last slab may be open-ended")
            continue
        if index == last:
            raise ConfigurationError(f"{name}: last slab must be open-ended")
        if not _is_number(slab.max) or slab.max <= slab.min:
            raise ConfigurationError(f"{name}: slab {index} bounds are not ascending")
        expected_min = slab.max


def calculate_progressive_bill(units: float, tariff: StateTariff) -> BillBreakdown:
    """
    Bill `units` kWh against `tariff`.

    Returns the slab-wise charges, their sum as energy cost, the fixed charge
    and the total.
    """
    validate_tariff(tariff)
    if not _is_number(units) or math.isinf(units) or units < 0:
        raise ValidationError(f"units must be a number >= 0, got {units!r}")

    charges: List[SlabCharge] = []
    for slab in tariff.slabs:
        if units <= slab.min:
            break
        upper = units if slab.max is None else min(units, slab.max)
        in_slab = max(0.0, upper - slab.min)
        charges.append(SlabCharge(
            min=slab.min,
            max=slab.max,
            rate=slab.rate,
            units=in_slab,
            cost=in_slab * slab.rate,
        ))

    energy_cost = sum((charge.cost for charge in charges), 0.0)
    fixed_charge = float(tariff.fixed_charge)
    return BillBreakdown(
        energy_cost=energy_cost,
        fixed_charge=fixed_charge,
        total=energy_cost + fixed_charge,
        slab_breakdown=tuple(charges),
    )
