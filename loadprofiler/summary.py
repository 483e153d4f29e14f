from __future__ import annotations
from typing import cast

from . import transform
from .types import ProfileRecord, SummaryPayload


def summarise(record: ProfileRecord) -> SummaryPayload:
    days = list(record.daily_profiles)
    d = transform.daily_frame(days)

    total_energy_kwh = float(d["total_energy_kwh"].sum()) if len(d) else 0.0
    per_day_avg = total_energy_kwh / len(d) if len(d) else 0.0

    # Peak day: first day holding the highest hourly-average peak
    if len(d):
        peak_day = str(d["peak_power"].astype(float).idxmax())
        peak_power = float(d.at[peak_day, "peak_power"])
        peak_hour = int(d.at[peak_day, "peak_hour"])
    else:
        peak_day, peak_power, peak_hour = None, 0.0, None

    days_records = [
        {
            "day": p.date_key,
            "day_of_week": p.day_of_week,
            "is_weekend": p.is_weekend,
            "total_energy_kwh": p.total_energy_kwh,
            "peak_power": p.peak_power,
            "peak_hour": p.peak_hour,
            "sample_count": p.sample_count,
            "hourly_profile": list(p.hourly_profile),
        }
        for p in days
    ]
    months_records = [
        {
            "month": m.month_key,
            "total_energy_kwh": m.total_energy_kwh,
            "distinct_day_count": m.distinct_day_count,
            "avg_daily_kwh": m.avg_daily_kwh,
            "peak_power": m.peak_power,
            "sample_count": m.sample_count,
        }
        for m in record.monthly_profiles
    ]

    start = record.date_range_start
    end = record.date_range_end
    payload: SummaryPayload = cast(
        SummaryPayload,
        {
            "meta": {
                "start": start.isoformat() if start else None,
                "end": end.isoformat() if end else None,
                "interval_min": float(record.detected_interval_minutes),
                "days": len(days),
                "months": len(record.monthly_profiles),
                "samples": record.total_sample_count,
                "unit": record.value_unit,
                "needs_review": record.needs_review,
                "meter_name": record.meter_name,
            },
            "stats": {
                "total_energy_kwh": total_energy_kwh,
                "per_day_avg_kwh": float(per_day_avg),
                "peak_power": peak_power,
                "peak_day": peak_day,
                "peak_hour": peak_hour,
            },
            "profile24": transform.profile24(days),
            "days": days_records,
            "months": months_records,
        },
    )
    return payload
