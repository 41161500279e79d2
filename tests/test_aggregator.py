# tests/test_aggregator.py
from datetime import date

import pytest

from backend.lib.eleca_core.aggregator import (
    calendar_days,
    confidence_score,
    days_in_month,
    detect_spikes,
    estimate_daily_log,
    month_logs,
    parse_month,
    summarize_month,
)
from backend.lib.eleca_core.errors import ValidationError
from backend.lib.eleca_core.models import (
    Appliance,
    StateTariff,
    SubsidyConfig,
    TariffSlab,
    UserDailyUsage,
)

NO_SUBSIDY = SubsidyConfig("none")


def make_tariff():
    return StateTariff("T", "Test tariff", 50.0, (
        TariffSlab(0, 100, 3.0), TariffSlab(100, 300, 5.0), TariffSlab(300, None, 7.0),
    ))


def make_log(day, units, month=11, year=2025):
    d = date(year, month, day)
    return UserDailyUsage(id=f"log-u1-{d.isoformat()}", user_id="u1", date=d,
                          total_units=units, total_cost=units * 5)


def make_logs(count, units=8.0):
    return [make_log(day, units) for day in range(1, count + 1)]


def make_inventory():
    return [Appliance(id="ac", name="AC", category="cooling", watts=1000.0,
                      hours_per_day=5.0, days_per_month=30.0)]


def summarize(logs, subsidy=NO_SUBSIDY, month="2025-11", **kwargs):
    return summarize_month(logs, make_tariff(), make_inventory(), subsidy, "summer", month, **kwargs)


def test_ten_days_projection():
    summary = summarize(make_logs(10))
    assert summary.days_in_month == 30
    assert summary.days_logged == 10
    assert summary.total_units == 80.0
    assert summary.avg_units_per_day == 8.0
    assert summary.projected_units == 240.0
    assert summary.confidence_score == pytest.approx(65 + 10 / 30 * 35)
    assert summary.is_stabilized


def test_bills_go_through_the_tariff():
    summary = summarize(make_logs(10))
    assert summary.mtd_bill.total == 80 * 3 + 50
    assert summary.projected_bill_total == 300 + 140 * 5 + 50
    assert summary.total_cost == summary.mtd_bill.total
    assert summary.est_remainder_cost == summary.projected_bill_total - summary.total_cost


def test_no_logs_uses_inventory_baseline():
    summary = summarize([])
    assert summary.days_logged == 0
    assert summary.total_units == 0
    assert summary.avg_units_per_day == pytest.approx(180.0 / 30)
    assert summary.projected_units == pytest.approx(180.0)
    assert summary.confidence_score is None
    assert not summary.is_stabilized
    assert summary.mtd_bill.total == 50.0


def test_one_log_switches_to_observed_data():
    summary = summarize([make_log(1, 2.0)])
    assert summary.avg_units_per_day == 2.0
    assert summary.projected_units == 60.0


def test_other_months_are_ignored():
    logs = make_logs(3) + [make_log(5, 100.0, month=10), make_log(1, 100.0, month=11, year=2024)]
    summary = summarize(logs)
    assert summary.days_logged == 3
    assert summary.total_units == 24.0


def test_later_log_for_same_day_wins():
    logs = [make_log(1, 5.0), make_log(1, 9.0)]
    assert [log.total_units for log in month_logs(logs, "2025-11")] == [9.0]
    assert summarize(logs).total_units == 9.0


def test_stabilized_and_confidence_thresholds():
    assert not summarize(make_logs(6)).is_stabilized
    assert summarize(make_logs(7)).is_stabilized
    assert summarize(make_logs(9)).confidence_score is None
    assert summarize(make_logs(10)).confidence_score is not None


def test_confidence_is_increasing_and_below_100():
    scores = [confidence_score(days, 30) for days in range(10, 31)]
    assert all(a < b for a, b in zip(scores, scores[1:]))
    assert scores[-1] == 99.0
    assert confidence_score(31, 31) < 100


def test_slab_crossed_against_subsidy_limit():
    subsidy = SubsidyConfig("government", 50)
    assert summarize(make_logs(6), subsidy).slab_crossed is False
    assert summarize(make_logs(7), subsidy).slab_crossed is True
    summary = summarize(make_logs(7), subsidy)
    assert summary.subsidy_limit == 50.0
    assert summary.subsidy_used == 50.0


def test_slab_crossed_without_subsidy_default_compares_to_zero():
    assert summarize(make_logs(1), NO_SUBSIDY).slab_crossed is True
    assert summarize([], NO_SUBSIDY).slab_crossed is False


def test_slab_crossed_without_subsidy_can_be_ignored():
    summary = summarize(make_logs(5), NO_SUBSIDY, ignore_limit_without_subsidy=True)
    assert summary.slab_crossed is False
    subsidy = SubsidyConfig("company", 10)
    assert summarize(make_logs(5), subsidy, ignore_limit_without_subsidy=True).slab_crossed is True


def test_february_and_bad_months():
    assert days_in_month("2024-02") == 29
    assert days_in_month("2025-02") == 28
    assert parse_month("2025-11") == (2025, 11)
    for bad in ("2025-13", "2025/11", "", "25-11"):
        with pytest.raises(ValidationError):
            parse_month(bad)


def test_negative_log_units_raise():
    with pytest.raises(ValidationError):
        summarize([make_log(1, -4.0)])


def test_calendar_statuses():
    # limit 40: warning from 34 units, critical from 40
    logs = [make_log(day, 10.0) for day in (1, 2, 3, 5)] + [make_log(6, 1.0)]
    days = calendar_days(logs, "2025-11", SubsidyConfig("government", 40), date(2025, 11, 8))
    assert len(days) == 30
    by_day = {d.day_number: d for d in days}
    assert by_day[1].status == "safe"
    assert by_day[3].status == "safe"          # 30 < 34
    assert by_day[4].status is None
    assert by_day[4].is_estimated
    assert by_day[5].status == "critical"      # 40
    assert by_day[6].status == "critical"
    assert by_day[7].is_estimated and not by_day[7].is_future
    assert not by_day[8].is_estimated and not by_day[8].is_future
    assert by_day[9].is_future and by_day[9].status is None


def test_calendar_warning_band():
    logs = [make_log(1, 35.0)]
    days = calendar_days(logs, "2025-11", SubsidyConfig("government", 40), date(2025, 11, 30))
    assert days[0].status == "warning"


def test_calendar_without_limit_is_safe():
    logs = [make_log(1, 500.0)]
    days = calendar_days(logs, "2025-11", SubsidyConfig("government", 0), date(2025, 11, 2))
    assert days[0].status == "safe"
    days = calendar_days(logs, "2025-11", NO_SUBSIDY, date(2025, 11, 2),
                         ignore_limit_without_subsidy=True)
    assert days[0].status == "safe"


def test_calendar_reference_date_outside_month():
    days = calendar_days([], "2025-11", NO_SUBSIDY, date(2025, 12, 15))
    assert all(d.is_estimated and not d.is_future for d in days)
    days = calendar_days([], "2025-11", NO_SUBSIDY, date(2025, 10, 1))
    assert all(d.is_future and not d.is_estimated for d in days)


def test_detect_spikes():
    logs = [make_log(1, 2.5), make_log(2, 7.0), make_log(3, 7.5), make_log(4, 0.0), make_log(5, 9.0)]
    spikes = detect_spikes(logs, threshold_pct=50.0)
    # prev=2.5, curr=7.0 -> 180%; the jump after a zero day is skipped
    assert len(spikes) == 1
    assert spikes[0].date == date(2025, 11, 2)
    assert spikes[0].change_pct == pytest.approx(180.0)


def test_estimate_daily_log():
    log = estimate_daily_log("u1", date(2025, 11, 3), make_inventory(), make_tariff(), "summer")
    assert log.is_estimated
    assert log.id == "log-u1-2025-11-03"
    assert log.total_units == pytest.approx(6.0)
    entry = log.appliances[0]
    assert entry.rating_type == "standard"
    assert entry.rating_value == 1000.0
    assert entry.power_kw == 1.0
    assert entry.usage_hours == 5.0
    # a month of such days is 180 units -> 700 energy cost, 1/30 of it per day
    assert log.total_cost == pytest.approx(700.0 / 30)


def test_estimate_daily_log_with_hours_override():
    log = estimate_daily_log("u1", date(2025, 11, 3), make_inventory(), make_tariff(), "summer",
                             usage_hours={"ac": 0})
    assert log.total_units == 0.0
    assert log.total_cost == 0.0


def test_unknown_season_rejected_with_or_without_logs():
    for logs in ([], make_logs(3)):
        with pytest.raises(ValidationError):
            summarize_month(logs, make_tariff(), make_inventory(), NO_SUBSIDY, "spring", "2025-11")
