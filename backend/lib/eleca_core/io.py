# backend/lib/eleca_core/io.py
"""
Conversion between plain dicts / CSV / JSON text and the engine's records.

This is the caller-side validation layer: it rejects malformed input with
ValidationError (ConfigurationError for tariffs) before the engine sees it.
"""
import csv
import dataclasses
import json
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from io import StringIO
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigurationError, ValidationError
from .models import (
    Appliance,
    DailyApplianceEntry,
    SolarConfig,
    StateTariff,
    SubsidyConfig,
    TariffSlab,
    UserDailyUsage,
)
from .tariff import validate_tariff

MAX_HOURS_PER_DAY = 24
MAX_DAYS_PER_MONTH = 31


def _is_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float))


def _required(data: Mapping, key: str, where: str, error=ValidationError):
    if data.get(key) is None:
        raise error(f"{where}: missing field {key!r}")
    return data[key]


def _number(data: Mapping, key: str, where: str, error=ValidationError) -> float:
    value = _required(data, key, where, error)
    if not _is_number(value):
        raise error(f"{where}: {key} must be a number, got {value!r}")
    return float(value)


def _optional_number(data: Mapping, key: str, where: str) -> Optional[float]:
    if data.get(key) is None:
        return None
    return _number(data, key, where)


def _mapping(data, where: str, error=ValidationError) -> Mapping:
    if not isinstance(data, Mapping):
        raise error(f"{where}: expected an object, got {data!r}")
    return data


def _text(data: Mapping, key: str, where: str) -> str:
    value = _required(data, key, where)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{where}: {key} must be a non-empty string")
    return value


def parse_date(value, where: str = "date") -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"{where}: expected YYYY-MM-DD, got {value!r}") from None


def appliance_from_dict(data: Mapping) -> Appliance:
    _mapping(data, "appliance")
    where = f"appliance {data.get('id')!r}"
    hours = _optional_number(data, "hours_per_day", where)
    days = _optional_number(data, "days_per_month", where)
    if hours is not None and hours > MAX_HOURS_PER_DAY:
        raise ValidationError(f"{where}: hours_per_day must be <= {MAX_HOURS_PER_DAY}")
    if days is not None and days > MAX_DAYS_PER_MONTH:
        raise ValidationError(f"{where}: days_per_month must be <= {MAX_DAYS_PER_MONTH}")

    quantity = data.get("quantity", 1)
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise ValidationError(f"{where}: quantity must be an integer, got {quantity!r}")
    star = data.get("star_rating")
    if star is not None and (not isinstance(star, int) or isinstance(star, bool)):
        raise ValidationError(f"{where}: star_rating must be an integer, got {star!r}")

    return Appliance(
        id=_text(data, "id", where),
        name=data.get("name") or data["id"],
        category=_text(data, "category", where),
        watts=_optional_number(data, "watts", where),
        hours_per_day=hours,
        days_per_month=days,
        quantity=quantity,
        input_mode=data.get("input_mode", "standard"),
        appliance_type=data.get("appliance_type", ""),
        ac_type=data.get("ac_type"),
        annual_units=_optional_number(data, "annual_units", where),
        capacity_ton=_optional_number(data, "capacity_ton", where),
        iseer=_optional_number(data, "iseer", where),
        eer=_optional_number(data, "eer", where),
        star_rating=star,
    )


def tariff_from_dict(data: Mapping) -> StateTariff:
    _mapping(data, "tariff", ConfigurationError)
    where = f"tariff {data.get('id')!r}"
    raw_slabs = _required(data, "slabs", where, ConfigurationError)
    if not isinstance(raw_slabs, list):
        raise ConfigurationError(f"{where}: slabs must be a list")
    slabs = []
    for index, raw in enumerate(raw_slabs):
        slab_where = f"{where} slab {index}"
        _mapping(raw, slab_where, ConfigurationError)
        upper = raw.get("max")
        if upper is not None and not _is_number(upper):
            raise ConfigurationError(f"{slab_where}: max must be a number or null")
        slabs.append(TariffSlab(
            min=_number(raw, "min", slab_where, ConfigurationError),
            max=None if upper is None else float(upper),
            rate=_number(raw, "rate", slab_where, ConfigurationError),
        ))
    tariff = StateTariff(
        id=str(_required(data, "id", where, ConfigurationError)),
        name=str(data.get("name") or data["id"]),
        fixed_charge=_number(data, "fixed_charge", where, ConfigurationError),
        slabs=tuple(slabs),
    )
    validate_tariff(tariff)
    return tariff


def load_tariff_catalog(json_text: str) -> Dict[str, StateTariff]:
    """Parse a JSON list of tariffs into a dict keyed by tariff id."""
    try:
        raw = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"tariff catalog is not valid JSON: {e}") from None
    if not isinstance(raw, list):
        raise ConfigurationError("tariff catalog must be a JSON list")
    catalog: Dict[str, StateTariff] = {}
    for item in raw:
        tariff = tariff_from_dict(item)
        if tariff.id in catalog:
            raise ConfigurationError(f"duplicate tariff id {tariff.id!r}")
        catalog[tariff.id] = tariff
    return catalog


def solar_from_dict(data: Optional[Mapping]) -> SolarConfig:
    data = data or {}
    _mapping(data, "solar")
    installed = data.get("is_installed", False)
    if not isinstance(installed, bool):
        raise ValidationError("solar: is_installed must be true or false")
    rating = _optional_number(data, "rating_kw", "solar")
    return SolarConfig(is_installed=installed, rating_kw=0.0 if rating is None else rating)


def subsidy_from_dict(data: Optional[Mapping]) -> SubsidyConfig:
    data = data or {}
    _mapping(data, "subsidy")
    limit = _optional_number(data, "limit_units", "subsidy")
    return SubsidyConfig(type=data.get("type", "none"), limit_units=0.0 if limit is None else limit)


def usage_hours_from_dict(data: Optional[Mapping]) -> Dict[str, float]:
    """Per-appliance hours for one day: appliance id -> hours in [0, 24]."""
    data = _mapping(data or {}, "usage_hours")
    hours = {}
    for appliance_id, value in data.items():
        where = f"usage_hours {appliance_id!r}"
        if not _is_number(value) or not 0 <= value <= MAX_HOURS_PER_DAY:
            raise ValidationError(f"{where}: must be a number between 0 and {MAX_HOURS_PER_DAY}")
        hours[appliance_id] = float(value)
    return hours


def _entry_from_dict(data: Mapping, where: str) -> DailyApplianceEntry:
    _mapping(data, f"{where} appliance entry")
    return DailyApplianceEntry(
        appliance_id=_text(data, "appliance_id", where),
        appliance_type=data.get("appliance_type", ""),
        rating_type=data.get("rating_type", "standard"),
        rating_value=_number(data, "rating_value", where),
        power_kw=_number(data, "power_kw", where),
        usage_hours=_number(data, "usage_hours", where),
        units_consumed=_number(data, "units_consumed", where),
        cost=_number(data, "cost", where),
    )


def daily_usage_from_dict(data: Mapping) -> UserDailyUsage:
    _mapping(data, "log")
    where = f"log {data.get('id') or data.get('date')!r}"
    user_id = _text(data, "user_id", where)
    day = parse_date(_required(data, "date", where), where)
    total_units = _number(data, "total_units", where)
    if total_units < 0:
        raise ValidationError(f"{where}: total_units must be >= 0")
    is_estimated = data.get("is_estimated", False)
    if not isinstance(is_estimated, bool):
        raise ValidationError(f"{where}: is_estimated must be true or false")
    raw_entries = data.get("appliances") or []
    if not isinstance(raw_entries, list):
        raise ValidationError(f"{where}: appliances must be a list")
    return UserDailyUsage(
        id=data.get("id") or f"log-{user_id}-{day.isoformat()}",
        user_id=user_id,
        date=day,
        total_units=total_units,
        total_cost=_number(data, "total_cost", where),
        is_estimated=is_estimated,
        appliances=tuple(_entry_from_dict(e, where) for e in raw_entries),
    )


def parse_daily_logs_csv(csv_text: str, user_id: str) -> List[UserDailyUsage]:
    """
    Parse CSV text with header: date,total_units,total_cost
    Dates are ISO (2025-11-01). Every row becomes a measured (not estimated) log.
    """
    f = StringIO(csv_text.strip())
    reader = csv.DictReader(f)
    logs = []
    for row in reader:
        if not row.get("date") or not row.get("total_units") or not row.get("total_cost"):
            raise ValidationError(f"Missing field in row: {row}")
        try:
            units = float(row["total_units"])
            cost = float(row["total_cost"])
        except ValueError:
            raise ValidationError(f"Non-numeric value in row: {row}") from None
        if units < 0:
            raise ValidationError("total_units must be >= 0")
        day = parse_date(row["date"])
        logs.append(UserDailyUsage(
            id=f"log-{user_id}-{day.isoformat()}",
            user_id=user_id,
            date=day,
            total_units=units,
            total_cost=cost,
        ))
    return logs


def round_currency(value: float) -> float:
    """Round to 2 decimals, half up (not banker's rounding)."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def to_jsonable(obj: Any) -> Any:
    """Turn records (and containers of them) into JSON-ready dicts and lists."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj
