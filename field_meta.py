# field_meta.py
"""
FILE: field_meta.py
DESCRIPTION:
  Display metadata for each measurement field.
  Format: field -> (unit, friendly name)
"""

FIELD_META = {
    "temperature": ("°C", "Temperature"),
    "humidity": ("%", "Humidity"),
    "pressure": ("hPa", "Pressure"),
    "altitude": ("m", "Altitude"),
}

# Order in which readings are captured and sent
FIELD_ORDER = ("temperature", "humidity", "pressure", "altitude")
