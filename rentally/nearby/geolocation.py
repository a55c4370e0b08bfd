from __future__ import annotations

import ipaddress
import logging
from typing import Any, Mapping

import httpx

from ..errors import CoordinatesUnavailable
from .config import DEFAULT_GEOLOCATION_CONFIG, GeolocationConfig

logger = logging.getLogger(__name__)

_MAPPED_PREFIX = "::ffff:"


def client_ip(headers: Mapping[str, str], peer: str | None) -> str | None:
    """Caller IP: first ``X-Forwarded-For`` hop, then ``X-Real-IP``, then the socket peer."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()
    return peer


def clean_ip(ip: str | None) -> str:
    if not ip:
        return ""
    ip = ip.strip()
    if ip.lower().startswith(_MAPPED_PREFIX):
        ip = ip[len(_MAPPED_PREFIX):]
    return ip


def is_local_address(ip: str) -> bool:
    """True for addresses a public geolocation service cannot place."""
    if not ip or ip.lower() == "localhost":
        return True
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        # Not an IP at all (e.g. "testclient"); let the service use its own view.
        return True
    return addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_unspecified


class GeolocationClient:
    """Thin async client for an ip-api.com compatible lookup service."""

    def __init__(
        self,
        config: GeolocationConfig = DEFAULT_GEOLOCATION_CONFIG,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def url_for(self, ip: str | None) -> str:
        base = self._config.base_url.rstrip("/")
        return f"{base}/json/{ip}" if ip else f"{base}/json"

    async def lookup(self, ip: str | None) -> dict[str, Any]:
        """Return the service payload for ``ip`` (or the service's own vantage point).

        Raises ``CoordinatesUnavailable`` on any transport error, timeout,
        non-2xx answer, ``status: fail`` or payload without coordinates.
        """
        url = self.url_for(ip)
        logger.info("Requesting geolocation from %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout),
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers={"User-Agent": self._config.user_agent})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geolocation lookup failed for %s: %s", url, exc)
            raise CoordinatesUnavailable() from exc

        if not isinstance(payload, dict):
            logger.warning("Geolocation returned a non-object payload: %r", payload)
            raise CoordinatesUnavailable()
        if payload.get("status") != "success":
            logger.warning(
                "Geolocation reported failure: %s", payload.get("message") or "unknown reason"
            )
            raise CoordinatesUnavailable()
        if payload.get("lat") is None or payload.get("lon") is None:
            logger.warning("Geolocation payload missing coordinates: %r", payload)
            raise CoordinatesUnavailable()
        return payload
