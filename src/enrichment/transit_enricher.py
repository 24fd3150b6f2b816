"""
Transit enrichment for chat turns.

Decides from the user's message whether live transit data is relevant and,
if so, builds a text block injected into the model context. Lookups are
best-effort: any provider failure is logged and degrades the block, and
try_enrich never raises.
"""

import logging
from typing import Optional

from src.enrichment.uta_client import (
    POPULAR_STOPS,
    TransitProvider,
    TransitStop,
    format_alerts_response,
    format_arrival,
)
from src.utilities.config import TransitConfig

logger = logging.getLogger(__name__)

TRANSIT_KEYWORDS = (
    "bus", "trax", "train", "transit", "uta", "frontrunner",
    "stop", "station", "route", "schedule", "arrival", "delay", "alert",
)


def is_transit_query(text: str) -> bool:
    """True when the message mentions any transit keyword (case-insensitive substring)."""
    lowered = text.lower()
    return any(keyword in lowered for keyword in TRANSIT_KEYWORDS)


class TransitEnricher:
    """Builds live-transit context for messages that ask about transit."""

    def __init__(
        self,
        provider: TransitProvider,
        config: Optional[TransitConfig] = None,
        stops: Optional[list[TransitStop]] = None,
    ):
        self.provider = provider
        self.config = config or TransitConfig()
        self.stops = stops if stops is not None else POPULAR_STOPS

    async def try_enrich(self, text: str) -> str:
        """
        Return an enrichment block for the message, or "" when none applies.

        Messages without a transit keyword return immediately without any
        provider call.
        """
        if not self.config.enabled or not is_transit_query(text):
            return ""

        try:
            return await self._build(text)
        except Exception as e:
            logger.error(f"Transit enrichment failed: {e}", exc_info=True)
            return ""

    async def _build(self, text: str) -> str:
        logger.info(f"Transit query detected, fetching live data: '{text[:60]}'")
        parts: list[str] = []

        try:
            alerts = await self.provider.get_service_alerts()
            if alerts:
                parts.append(format_alerts_response(alerts) + "\n\n")
        except Exception as e:
            logger.warning(f"Failed to fetch service alerts: {e}")

        parts.append("**Popular UTA Stops:**\n")
        for stop in self.stops[: self.config.popular_stop_limit]:
            try:
                arrivals = await self.provider.get_stop_arrivals(stop.stop_id)
            except Exception as e:
                logger.warning(f"Failed to fetch arrivals for {stop.stop_name}: {e}")
                continue

            if arrivals:
                parts.append(f"\n{stop.stop_name}:\n")
                for arrival in arrivals[: self.config.arrivals_per_stop]:
                    parts.append(format_arrival(arrival) + "\n")

        return "".join(parts)
