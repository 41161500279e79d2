# backend/lib/eleca_core/models.py
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


@dataclass(frozen=True)
class Appliance:
    """
    One inventory item. Only the fields needed by `input_mode` are read:
    standard -> watts, bee_annual -> annual_units,
    iseer -> capacity_ton + iseer, eer -> capacity_ton + eer.
    """
    id: str
    name: str
    category: str
    watts: float
    hours_per_day: float
    days_per_month: float
    quantity: int = 1
    input_mode: str = "standard"
    appliance_type: str = ""
    ac_type: Optional[str] = None
    annual_units: Optional[float] = None
    capacity_ton: Optional[float] = None
    iseer: Optional[float] = None
    eer: Optional[float] = None
    star_rating: Optional[int] = None


@dataclass(frozen=True)
class TariffSlab:
    min: float
    max: Optional[float]  # None marks the open-ended last slab
    rate: float


@dataclass(frozen=True)
class StateTariff:
    id: str
    name: str
    fixed_charge: float
    slabs: Tuple[TariffSlab, ...]


@dataclass(frozen=True)
class SolarConfig:
    is_installed: bool = False
    rating_kw: float = 0.0


@dataclass(frozen=True)
class SubsidyConfig:
    type: str = "none"
    limit_units: float = 0.0


@dataclass(frozen=True)
class SlabCharge:
    min: float
    max: Optional[float]
    rate: float
    units: float
    cost: float


@dataclass(frozen=True)
class BillBreakdown:
    energy_cost: float
    fixed_charge: float
    total: float
    slab_breakdown: Tuple[SlabCharge, ...] = ()


@dataclass(frozen=True)
class SubsidySplit:
    subsidized_units: float
    billable_units: float
    remaining_subsidy_units: float


@dataclass(frozen=True)
class ApplianceBreakdown:
    appliance: Appliance
    units: float
    cost: float
    percentage: float


@dataclass(frozen=True)
class CalculationResult:
    id: str
    total_units: float
    solar_generated_units: float
    net_units: float
    subsidized_units: float
    billable_units: float
    total_cost: float
    energy_cost: float
    fixed_charge: float
    bill: BillBreakdown
    appliance_breakdown: Tuple[ApplianceBreakdown, ...]
    highest_consumer: Optional[ApplianceBreakdown]
    top_consumers: Tuple[ApplianceBreakdown, ...]
    efficiency_score: str
    subsidy_config: SubsidyConfig
    season: str
    remaining_subsidy_units: float
    seasonal_impact: float
    # read-only view, season -> monthly units
    seasonal_projections: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class DailyApplianceEntry:
    appliance_id: str
    appliance_type: str
    rating_type: str
    rating_value: float
    power_kw: float
    usage_hours: float
    units_consumed: float
    cost: float


@dataclass(frozen=True)
class UserDailyUsage:
    id: str
    user_id: str
    date: date
    total_units: float
    total_cost: float
    is_estimated: bool = False
    appliances: Tuple[DailyApplianceEntry, ...] = ()


@dataclass(frozen=True)
class MonthlyUsageSummary:
    month: str  # YYYY-MM
    days_in_month: int
    days_logged: int
    total_units: float
    avg_units_per_day: float
    projected_units: float
    mtd_bill: BillBreakdown
    projected_bill: BillBreakdown
    total_cost: float
    projected_bill_total: float
    est_remainder_cost: float
    subsidy_limit: float
    subsidy_used: float
    slab_crossed: bool
    confidence_score: Optional[float]
    is_stabilized: bool


@dataclass(frozen=True)
class CalendarDay:
    date: date
    day_number: int
    log: Optional[UserDailyUsage]
    status: Optional[str]  # safe / warning / critical, None when not logged
    is_future: bool
    is_estimated: bool


@dataclass(frozen=True)
class UsageSpike:
    date: date
    previous_units: float
    current_units: float
    change_pct: float
