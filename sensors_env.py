# sensors_env.py
"""
FILE: sensors_env.py
DESCRIPTION:
  Measurement sources. Each returns one Readings tuple per call to read().
  - BME280Source: Bosch BME280 over I2C (Adafruit CircuitPython driver).
  - SimulatedSource: Random but plausible values for bench testing.
"""
import random
from collections import namedtuple

from utils import calculate_altitude

Readings = namedtuple("Readings", ["temperature", "humidity", "pressure", "altitude"])

SOURCES = ("bme280", "simulated")


class SensorInitError(RuntimeError):
    """The sensor could not be brought up. Fatal at startup."""


class MeasurementSource:
    name = "base"

    def read(self):
        raise NotImplementedError


class BME280Source(MeasurementSource):
    name = "bme280"

    def __init__(self, address=0x77, sea_level_pressure=1013.25):
        self.sea_level_pressure = sea_level_pressure
        # The CircuitPython stack is only needed on real hardware
        try:
            import board
            import busio
            from adafruit_bme280 import basic as adafruit_bme280
        except (ImportError, NotImplementedError, RuntimeError) as e:
            raise SensorInitError(f"BME280 driver unavailable: {e}") from e

        try:
            i2c = busio.I2C(board.SCL, board.SDA)
            self.sensor = adafruit_bme280.Adafruit_BME280_I2C(i2c, address=address)
        except (OSError, ValueError, RuntimeError) as e:
            raise SensorInitError(f"BME280 not found at 0x{address:02x}: {e}") from e

    def read(self):
        pressure = float(self.sensor.pressure)
        return Readings(
            temperature=float(self.sensor.temperature),
            humidity=float(self.sensor.humidity),
            pressure=pressure,
            altitude=calculate_altitude(pressure, self.sea_level_pressure),
        )


class SimulatedSource(MeasurementSource):
    name = "simulated"

    def __init__(self, sea_level_pressure=1013.25, seed=None):
        self.sea_level_pressure = sea_level_pressure
        self._rng = random.Random(seed)

    def read(self):
        pressure = round(self._rng.uniform(1005.0, 1015.0), 2)
        return Readings(
            temperature=round(self._rng.uniform(20.0, 25.5), 2),
            humidity=round(self._rng.uniform(40.0, 60.0), 1),
            pressure=pressure,
            altitude=calculate_altitude(pressure, self.sea_level_pressure),
        )


def create_source(name, settings):
    """Builds the configured source. Raises SensorInitError if the hardware is missing."""
    if name == "bme280":
        return BME280Source(settings.bme280_address, settings.sea_level_pressure)
    if name == "simulated":
        return SimulatedSource(settings.sea_level_pressure)
    raise ValueError(f"Unknown sensor source '{name}'. Choose one of: {', '.join(SOURCES)}")
