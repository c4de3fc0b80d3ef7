"""
Sentrio device API.

Thin wrappers over ``AsyncDigestClient`` for the endpoints the dashboard
talks to: system health, call status and hangup, display messages and
camera snapshots.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable, List, Optional

import httpx

from ._client import AsyncDigestClient
from ._models._message import DigestResponse
from ._types import (
    ClientConfig,
    DigestError,
    HttpMethod,
    ResponseEncoding,
    TransportError,
)
from ._utils import (
    CALL_HANGUP_PATH,
    CALL_STATUS_PATH,
    CAMERA_SNAPSHOT_PATH,
    DISPLAY_TEXT_PATH,
    DISPLAY_TEXT_TIMEOUT_MS,
    HEALTH_CHECK_TIMEOUT_MS,
    SNAPSHOT_TIMEOUT_MS,
    SYSTEM_STATUS_PATH,
    logger,
)

ONLINE = "online"
OFFLINE = "offline"


@dataclass(frozen=True)
class SentrioDevice:
    """A call station, addressed by IP (or host name)."""

    ip: str
    name: str = ""


@dataclass
class DeviceStatus:
    """Result of one health check."""

    ip: str
    name: str
    status: str
    data: Any = None
    error: Optional[str] = None
    last_update: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_online(self) -> bool:
        return self.status == ONLINE


def device_url(ip: str, path: str, params: Optional[dict] = None) -> str:
    """
    Build ``https://{ip}{path}`` with an optional query string.

    Raises:
        TransportError: If the address does not form a valid URL
    """
    try:
        return str(httpx.URL(f"https://{ip}{path}", params=params))
    except httpx.InvalidURL as exc:
        raise TransportError(f"Invalid device address {ip!r}: {exc}") from exc


class SentrioClient:
    """
    Client for a fleet of sentrio devices sharing one set of credentials.

    Example:
        >>> async with SentrioClient("admin", "admin") as sentrio:
        ...     statuses = await sentrio.check_health([SentrioDevice("10.0.0.12", "Lobby")])
    """

    def __init__(
        self,
        username: str,
        password: str,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[AsyncDigestClient] = None,
    ):
        self.username = username
        self._password = password
        self._client = client or AsyncDigestClient(config, transport=transport)
        self._owns_client = client is None

    async def _request(
        self,
        ip: str,
        path: str,
        method: HttpMethod = HttpMethod.GET,
        body: Any = None,
        *,
        params: Optional[dict] = None,
        timeout_ms: Optional[int] = None,
        response_encoding: ResponseEncoding = ResponseEncoding.JSON,
    ) -> DigestResponse:
        return await self._client.request(
            device_url(ip, path, params),
            method,
            body,
            username=self.username,
            password=self._password,
            timeout_ms=timeout_ms,
            response_encoding=response_encoding,
        )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def system_status(self, ip: str) -> Any:
        response = await self._request(
            ip, SYSTEM_STATUS_PATH, timeout_ms=HEALTH_CHECK_TIMEOUT_MS
        )
        return response.data

    async def device_status(self, device: SentrioDevice) -> DeviceStatus:
        """
        Check one device. Failures become an ``offline`` status carrying
        the error message rather than an exception.
        """
        try:
            data = await self.system_status(device.ip)
        except DigestError as exc:
            logger.warning(f"Sentrio {device.ip} health check failed: {exc}")
            return DeviceStatus(device.ip, device.name, OFFLINE, error=str(exc))

        online = isinstance(data, dict) and bool(data.get("success"))
        return DeviceStatus(device.ip, device.name, ONLINE if online else OFFLINE, data=data)

    async def check_health(self, devices: Iterable[SentrioDevice]) -> List[DeviceStatus]:
        """Check all devices concurrently; results keep the input order."""
        return list(
            await asyncio.gather(*(self.device_status(device) for device in devices))
        )

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    async def call_status(self, ip: str) -> Any:
        response = await self._request(ip, CALL_STATUS_PATH)
        return response.data

    async def hangup(self, ip: str, session: str) -> Any:
        if not session:
            raise ValueError("session is required")
        response = await self._request(
            ip, CALL_HANGUP_PATH, HttpMethod.POST, params={"session": session}
        )
        return response.data

    async def watch_call_status(
        self, ip: str, interval: float = 3.0
    ) -> AsyncIterator[Any]:
        """
        Poll the call status forever, one item per ``interval`` seconds.

        Errors are yielded as ``{"success": False, "error": ...}`` so a
        single unreachable poll does not end the stream.
        """
        while True:
            await asyncio.sleep(interval)
            try:
                yield await self.call_status(ip)
            except DigestError as exc:
                yield {"success": False, "error": str(exc)}

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    async def display_text(
        self, ip: str, message: dict, timeout_ms: int = DISPLAY_TEXT_TIMEOUT_MS
    ) -> Any:
        """Show a stored message; the device may wait for the user to answer."""
        response = await self._request(
            ip, DISPLAY_TEXT_PATH, HttpMethod.PUT, message, timeout_ms=timeout_ms
        )
        return response.data

    async def display_freetext(
        self,
        ip: str,
        uid: str,
        text: str,
        *,
        response: bool = False,
        timeout: int = 30,
        icon: str = "technician",
    ) -> Any:
        """Show ad-hoc text. ``timeout`` is in seconds, as the device expects."""
        if not uid or not text:
            raise ValueError("Freetext message must have uid and text")
        payload = {
            "uid": uid,
            "text": text,
            "response": response,
            "timeout": timeout,
            "icon": icon,
        }
        return await self.display_text(ip, payload, timeout_ms=timeout * 1000)

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    async def camera_snapshot(
        self,
        ip: str,
        width: int = 640,
        height: int = 480,
        source: str = "external",
    ) -> DigestResponse:
        """Fetch a snapshot; ``data`` holds the image bytes."""
        return await self._request(
            ip,
            CAMERA_SNAPSHOT_PATH,
            params={"width": width, "height": height, "source": source},
            timeout_ms=SNAPSHOT_TIMEOUT_MS,
            response_encoding=ResponseEncoding.BINARY,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
        return False


__all__ = [
    "DeviceStatus",
    "SentrioClient",
    "SentrioDevice",
    "device_url",
    "ONLINE",
    "OFFLINE",
]
