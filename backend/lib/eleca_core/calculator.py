# backend/lib/eleca_core/calculator.py
"""
Full household calculation: inventory + tariff + solar + subsidy + season.

Order of work:
  1. monthly units per appliance
  2. solar generation, net units after offset
  3. subsidy split of the net units
  4. progressive bill on the billable units
  5. per-appliance cost share, ranking, grade, seasonal projections
"""
import hashlib
import logging
import math
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Tuple

from .constants import (
    EFFICIENCY_BANDS,
    FALLBACK_GRADE,
    SEASONS,
    SOLAR_DAYS_PER_MONTH,
    SOLAR_KWH_PER_KW_PER_DAY,
    TOP_CONSUMERS_COUNT,
)
from .energy import compute_monthly_units
from .errors import ValidationError
from .inventory import ensure_unique_ids
from .models import (
    Appliance,
    ApplianceBreakdown,
    CalculationResult,
    SolarConfig,
    StateTariff,
    SubsidyConfig,
)
from .subsidy import apply_subsidy, validate_subsidy
from .tariff import calculate_progressive_bill, validate_tariff

logger = logging.getLogger(__name__)


def solar_generation_units(config: SolarConfig) -> float:
    """Monthly kWh from rooftop solar; zero when nothing is installed."""
    if not config.is_installed:
        return 0.0
    rating = config.rating_kw
    if isinstance(rating, bool) or not isinstance(rating, (int, float)) or math.isnan(rating) or rating < 0:
        raise ValidationError(f"solar rating must be a number >= 0, got {rating!r}")
    return rating * SOLAR_KWH_PER_KW_PER_DAY * SOLAR_DAYS_PER_MONTH


def efficiency_score(total_units: float,
                     bands: Sequence[Tuple[float, str]] = EFFICIENCY_BANDS,
                     fallback: str = FALLBACK_GRADE) -> str:
    for upper, grade in bands:
        if total_units < upper:
            return grade
    return fallback


def seasonal_projections(appliances: Iterable[Appliance]) -> Mapping[str, float]:
    """Monthly units of the whole inventory for every season."""
    items = tuple(appliances)
    return MappingProxyType({
        season: sum((compute_monthly_units(a, season) for a in items), 0.0)
        for season in SEASONS
    })


def calculation_id(appliances: Sequence[Appliance], tariff: StateTariff,
                   solar_config: SolarConfig, subsidy_config: SubsidyConfig,
                   season: str) -> str:
    """Deterministic id for a set of inputs; equal inputs give equal ids."""
    key = repr((tuple(appliances), tariff, solar_config, subsidy_config, season))
    return "calc-" + hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


def get_full_calculation(appliances: Iterable[Appliance], tariff: StateTariff,
                         solar_config: SolarConfig, subsidy_config: SubsidyConfig,
                         season: str) -> CalculationResult:
    validate_tariff(tariff)
    validate_subsidy(subsidy_config)
    if season not in SEASONS:
        raise ValidationError(f"unknown season {season!r}")
    items = tuple(appliances)
    ensure_unique_ids(items)

    per_appliance = [(a, compute_monthly_units(a, season)) for a in items]
    total_units = sum((units for _, units in per_appliance), 0.0)

    solar_units = solar_generation_units(solar_config)
    net_units = max(0.0, total_units - solar_units)
    split = apply_subsidy(net_units, subsidy_config)
    bill = calculate_progressive_bill(split.billable_units, tariff)

    breakdown = []
    for appliance, units in per_appliance:
        if total_units > 0:
            share = units / total_units
            breakdown.append(ApplianceBreakdown(appliance, units, share * bill.energy_cost, share * 100))
        else:
            breakdown.append(ApplianceBreakdown(appliance, units, 0.0, 0.0))
    # sorted() is stable, so equal consumers keep inventory order
    ranked = tuple(sorted(breakdown, key=lambda b: b.units, reverse=True))

    projections = seasonal_projections(items)
    others = [projections[s] for s in SEASONS if s != season]
    seasonal_impact = projections[season] - sum(others) / len(others)

    result = CalculationResult(
        id=calculation_id(items, tariff, solar_config, subsidy_config, season),
        total_units=total_units,
        solar_generated_units=solar_units,
        net_units=net_units,
        subsidized_units=split.subsidized_units,
        billable_units=split.billable_units,
        total_cost=bill.total,
        energy_cost=bill.energy_cost,
        fixed_charge=bill.fixed_charge,
        bill=bill,
        appliance_breakdown=ranked,
        highest_consumer=ranked[0] if ranked else None,
        top_consumers=ranked[:TOP_CONSUMERS_COUNT],
        efficiency_score=efficiency_score(total_units),
        subsidy_config=subsidy_config,
        season=season,
        remaining_subsidy_units=split.remaining_subsidy_units,
        seasonal_impact=seasonal_impact,
        seasonal_projections=projections,
    )
    logger.debug("calculation %s: %.2f units, %.2f billable, total %.2f",
                 result.id, total_units, split.billable_units, bill.total)
    return result
