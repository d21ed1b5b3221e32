from auroracast.util.numbers import as_float

# Rough dipole offset: geographic latitude minus ~11° near the European/Atlantic sector.
GEOMAGNETIC_LATITUDE_OFFSET_DEG = 11.0
OVAL_GEOMAGNETIC_LATITUDE_DEG = 67.0
KM_PER_DEGREE_LATITUDE = 111.0


def approx_geomagnetic_latitude(latitude_deg: float) -> float:
    return latitude_deg - GEOMAGNETIC_LATITUDE_OFFSET_DEG


def approx_distance_to_oval_km(geomagnetic_latitude_deg: float) -> float:
    delta = abs(abs(geomagnetic_latitude_deg) - OVAL_GEOMAGNETIC_LATITUDE_DEG)
    return delta * KM_PER_DEGREE_LATITUDE


def kp_activity_label(kp) -> str:
    k = as_float(kp, 0.0)
    if k >= 7:
        return "Very high"
    if k >= 5:
        return "High"
    if k >= 3.5:
        return "Moderate"
    return "Low"
