"""
FILE: config.py
DESCRIPTION:
  Values can be set via environment variables or a .env file.
  See .env.example for the full list.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Trapper (monitoring server) connection
    zabbix_server: str = Field(
        default="localhost", description="Monitoring server hostname or IP"
    )
    zabbix_port: int = Field(default=10051, description="Trapper port")
    zabbix_host: str = Field(
        default="",
        description="Host name items are reported under (empty = system hostname)",
    )

    # Item keys, one per measurement
    key_temperature: str = Field(default="Temp", description="Item key for temperature")
    key_humidity: str = Field(default="Humidity", description="Item key for humidity")
    key_pressure: str = Field(default="Pressure", description="Item key for pressure")
    key_altitude: str = Field(default="Altitude", description="Item key for altitude")

    # Timing (seconds)
    send_interval: float = Field(
        default=60, gt=0, description="Seconds between send cycles"
    )
    response_timeout: float = Field(
        default=10, gt=0, description="Seconds to wait for the server reply"
    )
    connect_timeout: float = Field(
        default=5, gt=0, description="Seconds to wait for the TCP connect"
    )

    # Sensor
    sensor_source: str = Field(
        default="bme280", description="Measurement source: bme280 or simulated"
    )
    bme280_address: int = Field(default=0x77, description="BME280 I2C address")
    sea_level_pressure: float = Field(
        default=1013.25, gt=0, description="Reference pressure (hPa) for altitude"
    )
    unavailable_value: Optional[float] = Field(
        default=None,
        description="Sentinel sent for unreadable measurements (unset = omit them)",
    )

    # Protocol
    trapper_extended_length: bool = Field(
        default=False,
        description="Allow payloads of 64 KiB and above (peer must support it)",
    )
    debug_raw_json: bool = Field(
        default=False, description="Print the raw trapper JSON payload"
    )

    @property
    def item_keys(self) -> dict:
        """Maps measurement field names to their item keys."""
        return {
            "temperature": self.key_temperature,
            "humidity": self.key_humidity,
            "pressure": self.key_pressure,
            "altitude": self.key_altitude,
        }


# Global settings instance
settings = Settings()
