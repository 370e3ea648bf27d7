"""Weather sample types and the weather_log table mapping."""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import REAL, Column, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class WeatherLogRecord(Base):
    __tablename__ = "weather_log"

    id = Column(Integer, primary_key=True, nullable=False)
    timestamp = Column(Text, nullable=False)
    temp = Column(REAL, nullable=False)
    pressure = Column(REAL, nullable=False)
    humidity = Column(REAL, nullable=False)


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Encode a moment as an RFC 3339 UTC timestamp with second precision."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class NewWeatherSample:
    """A reading that has not been stored yet."""

    timestamp: str
    temp: float
    pressure: float
    humidity: float

    @classmethod
    def now(cls, temp: float, pressure: float, humidity: float) -> "NewWeatherSample":
        return cls(timestamp=utc_timestamp(), temp=temp, pressure=pressure, humidity=humidity)


@dataclass(frozen=True)
class WeatherSample:
    """A stored reading together with the id the store assigned to it."""

    id: int
    timestamp: str
    temp: float
    pressure: float
    humidity: float

    @classmethod
    def from_record(cls, record: WeatherLogRecord) -> "WeatherSample":
        return cls(
            id=record.id,
            timestamp=record.timestamp,
            temp=record.temp,
            pressure=record.pressure,
            humidity=record.humidity,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
