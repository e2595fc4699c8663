# utils.py
"""
FILE: utils.py
DESCRIPTION:
  Shared helper functions used across the project.
  - get_system_hostname(): Default host name items are reported under.
  - calculate_altitude(): Barometric formula for altitude from pressure.
  - is_reading(): True for a usable numeric reading (not None/NaN).
"""
import math
import socket

# Global cache
_SYSTEM_HOSTNAME = None

def get_system_hostname():
    global _SYSTEM_HOSTNAME
    if _SYSTEM_HOSTNAME:
        return _SYSTEM_HOSTNAME

    try:
        host_id = socket.gethostname()
    except OSError:
        host_id = ""

    # If for some reason hostname is empty, fallback to a static default
    _SYSTEM_HOSTNAME = host_id or "weather-sender"
    return _SYSTEM_HOSTNAME

def calculate_altitude(pressure_hpa, sea_level_hpa=1013.25):
    """Calculates altitude (m) from pressure using the international barometric formula."""
    if not is_reading(pressure_hpa) or pressure_hpa <= 0:
        return None
    if sea_level_hpa <= 0:
        return None
    return round(44330.0 * (1.0 - math.pow(pressure_hpa / sea_level_hpa, 0.1903)), 2)

def is_reading(value):
    if value is None:
        return False
    try:
        return not math.isnan(float(value))
    except (TypeError, ValueError):
        return False
