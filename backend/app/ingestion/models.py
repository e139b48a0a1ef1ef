"""
Data structures for upstream environmental readings.

All readings are immutable and built fresh for every aggregation pass.
``to_dict`` produces the wire shape consumed by the dashboard, which keeps
the upstream's original field names.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from backend.app.ingestion.normalizer import parse_aqi_index, to_number

PLACEHOLDER_TIMESTAMP = "Data Missing"


@dataclass(frozen=True)
class WeatherReading:
    """Current weather for a region."""
    city: str
    temp: float = 0.0             # °C
    humidity: float = 0.0         # %
    wind_speed: float = 0.0       # kph
    description: str = ""
    rain_last_3h: float = 0.0     # mm, trailing precipitation window

    @property
    def has_recent_rain(self) -> bool:
        return self.rain_last_3h > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "city": self.city,
            "temp": self.temp,
            "humidity": self.humidity,
            "wind_speed": self.wind_speed,
            "description": self.description,
            "rain_last_3h": self.rain_last_3h,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeatherReading":
        return cls(
            city=str(data.get("city") or ""),
            temp=to_number(data.get("temp")),
            humidity=to_number(data.get("humidity")),
            wind_speed=to_number(data.get("wind_speed")),
            description=str(data.get("description") or ""),
            rain_last_3h=to_number(data.get("rain_last_3h")),
        )


@dataclass(frozen=True)
class PollutionReading:
    """Particulate readings plus the optional US-EPA categorical index (1–6)."""
    city: str
    pm25: float = 0.0             # µg/m³
    pm10: float = 0.0             # µg/m³
    us_epa_index: Optional[int] = None
    last_updated: str = PLACEHOLDER_TIMESTAMP

    @classmethod
    def placeholder(cls, city: str) -> "PollutionReading":
        """Degraded default used when no live pollution data exists."""
        return cls(city=city)

    @property
    def is_placeholder(self) -> bool:
        return self.last_updated == PLACEHOLDER_TIMESTAMP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "city": self.city,
            "pm25": self.pm25,
            "pm10": self.pm10,
            "usEpaIndex": self.us_epa_index,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PollutionReading":
        return cls(
            city=str(data.get("city") or ""),
            pm25=to_number(data.get("pm25")),
            pm10=to_number(data.get("pm10")),
            us_epa_index=parse_aqi_index(data.get("usEpaIndex")),
            last_updated=str(data.get("lastUpdated") or PLACEHOLDER_TIMESTAMP),
        )


# Alternative column spellings seen across data.gov.in water resources
_WATER_FIELD_ALIASES = {
    "station_code": ("station_code", "stationcode", "station_id", "code"),
    "station_name": ("station_name", "stationname", "monitoring_location", "location"),
    "state_name": ("state_name", "state", "statename"),
    "district_name": ("district_name", "district", "districtname"),
    "quality_parameter": ("quality_parameter", "parameter", "parameter_name"),
    "value": ("value", "parameter_value", "reading"),
}


def _pick(raw: Mapping[str, Any], aliases: tuple) -> str:
    lowered = {str(k).lower(): v for k, v in raw.items()}
    for key in aliases:
        value = lowered.get(key)
        if value is not None:
            return str(value).strip()
    return ""


@dataclass(frozen=True)
class WaterQualityRecord:
    """
    One station/parameter reading from the bulk water-quality dataset.

    ``value`` is kept as the raw string; qualifiers like "<0.5" or "BDL"
    are interpreted later by the classifier.
    """
    station_code: str = ""
    station_name: str = ""
    state_name: str = ""
    district_name: str = ""
    quality_parameter: str = ""
    value: str = ""

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "WaterQualityRecord":
        return cls(**{
            field_name: _pick(raw, aliases)
            for field_name, aliases in _WATER_FIELD_ALIASES.items()
        })

    def to_dict(self) -> Dict[str, Any]:
        return {
            "station_code": self.station_code,
            "station_name": self.station_name,
            "state_name": self.state_name,
            "district_name": self.district_name,
            "quality_parameter": self.quality_parameter,
            "value": self.value,
        }
