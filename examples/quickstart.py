"""orbtrace quickstart — parse a TLE, sample its ground track and a station pass."""

from datetime import timedelta

from orbtrace import ObserverPosition, parse_tle, sample_look_angles, sample_positions

# ISS (ZARYA) TLE
tle_text = """
ISS (ZARYA)
1 25544U 98067A   24045.54896019  .00016717  00000-0  30093-3 0  9993
2 25544  51.6412 207.4925 0004948 290.5508 178.9792 15.49583488439596
""".strip()

# Parse it
iss = parse_tle(tle_text)[0]

print(f"Satellite: {iss.name}")
print(f"NORAD ID:  {iss.catalog_number}")
print(f"Epoch:     {iss.epoch_datetime}")
print(f"Incl:      {iss.inclination_deg:.4f}°")
print(f"Ecc:       {iss.eccentricity:.7f}")
print(f"Period:    {1440 / iss.mean_motion:.1f} min")

# Ground track for the first 30 minutes after epoch
start = iss.epoch_datetime
track = sample_positions(iss, start, start + timedelta(minutes=30), timedelta(minutes=5))
for sample in track:
    p = sample.position
    print(f"{sample.epoch:%H:%M} | {p.latitude_deg:7.2f} {p.longitude_deg:8.2f} | {p.altitude_km:6.1f} km")

# Look angles from Boulder, CO over the next day, above the horizon only
boulder = ObserverPosition(latitude_deg=40.015, longitude_deg=-105.27, altitude_m=1655.0)
passes = sample_look_angles(iss, boulder, start, start + timedelta(days=1), timedelta(minutes=1))
for sample in passes:
    a = sample.look_angles
    if a.visible:
        print(f"{sample.epoch:%H:%M} | az {a.azimuth_deg:5.1f} el {a.elevation_deg:4.1f} | {a.range_km:7.1f} km")
