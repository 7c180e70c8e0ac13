"""
Synthetic trip rows shared by the test modules.
"""
from datetime import date, timedelta

# Two cells well inside the default 0.05-degree grid
MIDTOWN = (-73.981, 40.761)
DOWNTOWN = (-74.009, 40.712)


def make_rows(location, days, start=date(2024, 1, 1), trips_per_day=lambda day: 1, hour=8, passengers=1):
    """One row per trip for `days` consecutive days at `location`."""
    rows = []
    lon, lat = location
    for day in range(days):
        current = start + timedelta(days=day)
        for trip in range(trips_per_day(day)):
            rows.append({
                "pickup_datetime": f"{current.isoformat()} {hour:02d}:{trip % 60:02d}:00",
                "pickup_longitude": lon,
                "pickup_latitude": lat,
                "passenger_count": passengers,
            })
    return rows


def varying_demand(day):
    return 1 + day % 4
