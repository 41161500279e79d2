# backend/lib/eleca_core/aggregator.py
"""
Month-to-date roll-up of daily usage logs.

Nothing here reads the clock: the month being summarised and the "today"
used for calendar classification are always passed in.
"""
import calendar
import logging
import re
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .constants import (
    BASELINE_DAYS_PER_MONTH,
    CONFIDENCE_BASE,
    CONFIDENCE_CAP,
    CONFIDENCE_MIN_DAYS,
    CONFIDENCE_SPAN,
    SEASONS,
    STABILIZED_AFTER_DAYS,
    STATUS_CRITICAL,
    STATUS_SAFE,
    STATUS_WARNING,
    WARNING_RATIO,
)
from .energy import appliance_power_kw, compute_daily_units, compute_monthly_units, rating_value
from .errors import ValidationError
from .models import (
    Appliance,
    CalendarDay,
    DailyApplianceEntry,
    MonthlyUsageSummary,
    StateTariff,
    SubsidyConfig,
    UsageSpike,
    UserDailyUsage,
)
from .subsidy import validate_subsidy
from .tariff import calculate_progressive_bill

logger = logging.getLogger(__name__)

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def parse_month(month: str) -> Tuple[int, int]:
    """'YYYY-MM' -> (year, month)."""
    match = _MONTH_RE.match(month or "")
    if not match:
        raise ValidationError(f"month must look like YYYY-MM, got {month!r}")
    year, number = int(match.group(1)), int(match.group(2))
    if not 1 <= number <= 12:
        raise ValidationError(f"month out of range: {month!r}")
    return year, number


def days_in_month(month: str) -> int:
    year, number = parse_month(month)
    return calendar.monthrange(year, number)[1]


def _check_log(log: UserDailyUsage) -> None:
    if not isinstance(log.date, date):
        raise ValidationError(f"log {log.id!r}: date must be a date, got {log.date!r}")
    units = log.total_units
    if isinstance(units, bool) or not isinstance(units, (int, float)) or not units >= 0:
        raise ValidationError(f"log {log.id!r}: total_units must be >= 0, got {units!r}")


def month_logs(logs: Iterable[UserDailyUsage], month: str) -> List[UserDailyUsage]:
    """
    Logs that fall in `month`, one per date, sorted by date.
    A later log for the same date replaces an earlier one.
    """
    year, number = parse_month(month)
    by_date: Dict[date, UserDailyUsage] = {}
    for log in logs:
        _check_log(log)
        if log.date.year == year and log.date.month == number:
            by_date[log.date] = log
    return [by_date[d] for d in sorted(by_date)]


def baseline_daily_units(inventory: Iterable[Appliance], season: str) -> float:
    """Expected kWh per day from the appliance inventory alone."""
    return sum((compute_monthly_units(a, season) for a in inventory), 0.0) / BASELINE_DAYS_PER_MONTH


def confidence_score(days_logged: int, month_days: int) -> Optional[float]:
    if days_logged < CONFIDENCE_MIN_DAYS:
        return None
    return min(CONFIDENCE_CAP, CONFIDENCE_BASE + (days_logged / month_days) * CONFIDENCE_SPAN)


def _limit_applies(subsidy_config: SubsidyConfig, ignore_limit_without_subsidy: bool) -> bool:
    return not (ignore_limit_without_subsidy and subsidy_config.type == "none")


def summarize_month(logs: Iterable[UserDailyUsage], tariff: StateTariff,
                    inventory: Iterable[Appliance], subsidy_config: SubsidyConfig,
                    season: str, month: str,
                    ignore_limit_without_subsidy: bool = False) -> MonthlyUsageSummary:
    """
    Month-to-date totals and a month-end projection.

    Until a day is logged the projection uses the inventory baseline; from the
    first logged day on it uses observed data only.

    `slab_crossed` compares units against the subsidy limit even when the
    subsidy type is 'none' unless `ignore_limit_without_subsidy` is set.
    """
    validate_subsidy(subsidy_config)
    if season not in SEASONS:
        raise ValidationError(f"unknown season {season!r}")
    month_days = days_in_month(month)
    matched = month_logs(logs, month)

    total_units = sum((log.total_units for log in matched), 0.0)
    days_logged = len(matched)
    if days_logged > 0:
        avg_units_per_day = total_units / days_logged
    else:
        avg_units_per_day = baseline_daily_units(inventory, season)
    projected_units = avg_units_per_day * month_days

    mtd_bill = calculate_progressive_bill(total_units, tariff)
    projected_bill = calculate_progressive_bill(projected_units, tariff)

    limit = float(subsidy_config.limit_units)
    if _limit_applies(subsidy_config, ignore_limit_without_subsidy):
        slab_crossed = total_units > limit
    else:
        slab_crossed = False

    summary = MonthlyUsageSummary(
        month=month,
        days_in_month=month_days,
        days_logged=days_logged,
        total_units=total_units,
        avg_units_per_day=avg_units_per_day,
        projected_units=projected_units,
        mtd_bill=mtd_bill,
        projected_bill=projected_bill,
        total_cost=mtd_bill.total,
        projected_bill_total=projected_bill.total,
        est_remainder_cost=max(0.0, projected_bill.total - mtd_bill.total),
        subsidy_limit=limit,
        subsidy_used=min(total_units, limit),
        slab_crossed=slab_crossed,
        confidence_score=confidence_score(days_logged, month_days),
        is_stabilized=days_logged >= STABILIZED_AFTER_DAYS,
    )
    logger.debug("month %s: %d days logged, %.2f units, projected %.2f",
                 month, days_logged, total_units, projected_units)
    return summary


def day_status(cumulative_units: float, limit: float) -> str:
    if cumulative_units >= limit:
        return STATUS_CRITICAL
    if cumulative_units >= WARNING_RATIO * limit:
        return STATUS_WARNING
    return STATUS_SAFE


def calendar_days(logs: Iterable[UserDailyUsage], month: str,
                  subsidy_config: SubsidyConfig, reference_date: date,
                  ignore_limit_without_subsidy: bool = False) -> Tuple[CalendarDay, ...]:
    """
    One entry per day of `month` for calendar rendering.

    Logged days get a status from the cumulative units so far against the
    subsidy limit (a limit of 0 means unlimited). Unlogged days before
    `reference_date` are estimated, days after it are future.
    """
    validate_subsidy(subsidy_config)
    year, number = parse_month(month)
    by_date = {log.date: log for log in month_logs(logs, month)}

    limit = float(subsidy_config.limit_units)
    if limit <= 0 or not _limit_applies(subsidy_config, ignore_limit_without_subsidy):
        limit = float("inf")

    days = []
    cumulative = 0.0
    for day_number in range(1, days_in_month(month) + 1):
        current = date(year, number, day_number)
        log = by_date.get(current)
        status = None
        if log is not None:
            cumulative += log.total_units
            status = day_status(cumulative, limit)
        days.append(CalendarDay(
            date=current,
            day_number=day_number,
            log=log,
            status=status,
            is_future=current > reference_date,
            is_estimated=current < reference_date and log is None,
        ))
    return tuple(days)


def detect_spikes(logs: Iterable[UserDailyUsage], threshold_pct: float = 50.0) -> List[UsageSpike]:
    """
    Days whose units rose more than `threshold_pct` over the previous logged day.
    A previous day of zero units is skipped.
    """
    by_date: Dict[date, UserDailyUsage] = {}
    for log in logs:
        _check_log(log)
        by_date[log.date] = log
    ordered = [by_date[d] for d in sorted(by_date)]

    spikes = []
    for prev, curr in zip(ordered, ordered[1:]):
        if prev.total_units == 0:
            continue
        change_pct = (curr.total_units - prev.total_units) / prev.total_units * 100
        if change_pct > threshold_pct:
            spikes.append(UsageSpike(curr.date, prev.total_units, curr.total_units, change_pct))
    return spikes


def estimate_daily_log(user_id: str, day: date, inventory: Sequence[Appliance],
                       tariff: StateTariff, season: str,
                       usage_hours: Optional[Dict[str, float]] = None) -> UserDailyUsage:
    """
    Build an estimated log for `day` from the inventory.

    `usage_hours` maps appliance id -> hours used that day; appliances not in
    it use their usual daily hours. The day's cost is its share of the
    progressive bill for a month made of days like this one.
    """
    usage_hours = usage_hours or {}
    month_days = calendar.monthrange(day.year, day.month)[1]

    rows = []
    for appliance in inventory:
        hours = usage_hours.get(appliance.id, appliance.hours_per_day)
        units = compute_daily_units(appliance, season, hours)
        rows.append((appliance, hours, units))
    total_units = sum((units for _, _, units in rows), 0.0)

    month_bill = calculate_progressive_bill(total_units * month_days, tariff)
    rate = month_bill.energy_cost / (total_units * month_days) if total_units > 0 else 0.0

    entries = tuple(
        DailyApplianceEntry(
            appliance_id=appliance.id,
            appliance_type=appliance.appliance_type,
            rating_type=appliance.input_mode,
            rating_value=rating_value(appliance),
            power_kw=appliance_power_kw(appliance),
            usage_hours=float(hours),
            units_consumed=units,
            cost=units * rate,
        )
        for appliance, hours, units in rows
    )
    return UserDailyUsage(
        id=f"log-{user_id}-{day.isoformat()}",
        user_id=user_id,
        date=day,
        total_units=total_units,
        total_cost=sum((entry.cost for entry in entries), 0.0),
        is_estimated=True,
        appliances=entries,
    )
