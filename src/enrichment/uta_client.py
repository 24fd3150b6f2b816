"""
UTA transit-data client.

Async HTTP client for the transit provider's service-alert and stop-arrival
queries, the static list of popular stops, and text formatting for alerts.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from src.utilities.config import TransitConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitStop:
    """A well-known stop queried for upcoming arrivals."""

    stop_id: str
    stop_name: str


@dataclass
class ServiceAlert:
    """A current service alert."""

    header: str
    description: str = ""
    route_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ServiceAlert":
        return cls(
            header=data.get("header") or data.get("title") or "",
            description=data.get("description") or "",
            route_name=data.get("routeName") or data.get("route_name"),
        )


@dataclass
class StopArrival:
    """An upcoming vehicle arrival at a stop."""

    route_name: str
    headsign: str
    minutes_away: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StopArrival":
        return cls(
            route_name=data.get("routeName") or data.get("route_name") or "",
            headsign=data.get("headsign") or "",
            minutes_away=int(data.get("minutesAway", data.get("minutes_away", 0))),
        )


# Busiest TRAX / FrontRunner stations, in priority order
POPULAR_STOPS: list[TransitStop] = [
    TransitStop(stop_id="801164", stop_name="Salt Lake Central Station"),
    TransitStop(stop_id="801105", stop_name="Temple Square"),
    TransitStop(stop_id="801116", stop_name="Central Pointe Station"),
    TransitStop(stop_id="801145", stop_name="University of Utah - Stadium"),
    TransitStop(stop_id="801126", stop_name="Murray Central Station"),
    TransitStop(stop_id="801012", stop_name="Ogden Central Station"),
    TransitStop(stop_id="801240", stop_name="Provo Central Station"),
]


class TransitProvider(Protocol):
    """Source of live transit data."""

    async def get_service_alerts(self) -> list[ServiceAlert]: ...

    async def get_stop_arrivals(self, stop_id: str) -> list[StopArrival]: ...


class UTAClient:
    """
    HTTP client for the UTA real-time API.

    Endpoints:
        GET {base_url}/alerts                    -> {"alerts": [...]}
        GET {base_url}/stops/{stop_id}/arrivals  -> {"arrivals": [...]}
    """

    def __init__(self, config: TransitConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the client.

        Args:
            config: Transit configuration
            transport: Optional httpx transport (used to stub the provider)
        """
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if self.config.api_key:
            headers["X-API-Key"] = self.config.api_key
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers=headers,
            transport=self._transport,
        )

    async def _get_json(self, path: str) -> Any:
        async with self._client() as client:
            response = await client.get(path)
            response.raise_for_status()
            return response.json()

    async def get_service_alerts(self) -> list[ServiceAlert]:
        """Fetch current service alerts."""
        data = await self._get_json("/alerts")
        items = data.get("alerts", []) if isinstance(data, dict) else data
        alerts = [ServiceAlert.from_dict(item) for item in items]
        logger.debug(f"Fetched {len(alerts)} service alert(s)")
        return alerts

    async def get_stop_arrivals(self, stop_id: str) -> list[StopArrival]:
        """Fetch upcoming arrivals for a stop, nearest first."""
        data = await self._get_json(f"/stops/{stop_id}/arrivals")
        items = data.get("arrivals", []) if isinstance(data, dict) else data
        arrivals = [StopArrival.from_dict(item) for item in items]
        arrivals.sort(key=lambda a: a.minutes_away)
        logger.debug(f"Fetched {len(arrivals)} arrival(s) for stop {stop_id}")
        return arrivals


def format_alerts_response(alerts: list[ServiceAlert]) -> str:
    """Render service alerts as a markdown block for model context."""
    lines = ["**UTA Service Alerts:**"]
    for alert in alerts:
        prefix = f"{alert.route_name}: " if alert.route_name else ""
        line = f"- {prefix}{alert.header}"
        if alert.description:
            line += f" ({alert.description})"
        lines.append(line)
    return "\n".join(lines)


def format_arrival(arrival: StopArrival) -> str:
    return f"- {arrival.route_name} → {arrival.headsign} in {arrival.minutes_away} min"
