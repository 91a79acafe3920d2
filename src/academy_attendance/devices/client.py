from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..core.constants import DEFAULT_FETCH_TIMEOUT, DEFAULT_PROBE_TIMEOUT, EBIOSERVER_API_VERSION
from ..core.enums import DeviceVendor
from ..core.exceptions import DeviceCommunicationError
from .model import BiometricDevice

logger = logging.getLogger(__name__)

_PATHS = {
    DeviceVendor.GENERIC: {"status": "/status", "logs": "/logs"},
    DeviceVendor.EBIOSERVER: {"status": "/api/status", "logs": "/api/attendance/logs"},
}


class DeviceClient:
    """HTTP access to pull-model devices. Every call carries a timeout."""

    def __init__(
        self,
        *,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.probe_timeout = float(probe_timeout)
        self.fetch_timeout = float(fetch_timeout)
        self._http = session or requests.Session()

    @staticmethod
    def _headers(device: BiometricDevice) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if device.auth_key:
            headers["Authorization"] = f"Bearer {device.auth_key}"
        if device.vendor == DeviceVendor.EBIOSERVER:
            headers["API-Version"] = EBIOSERVER_API_VERSION
        return headers

    @staticmethod
    def _url(device: BiometricDevice, kind: str) -> str:
        base = device.base_url
        if not base:
            raise DeviceCommunicationError(f"Device '{device.name}' has no api url or ip address")
        return base + _PATHS[device.vendor][kind]

    def _get(self, device: BiometricDevice, kind: str, *, timeout: float, params: Optional[dict] = None):
        url = self._url(device, kind)
        try:
            response = self._http.get(url, headers=self._headers(device), params=params, timeout=timeout)
        except requests.exceptions.Timeout as e:
            raise DeviceCommunicationError(f"Timed out after {timeout:g}s calling {url}") from e
        except requests.exceptions.RequestException as e:
            raise DeviceCommunicationError(f"Cannot reach {url}: {e}") from e

        if response.status_code != 200:
            raise DeviceCommunicationError(f"{url} answered HTTP {response.status_code}")
        return response

    def probe(self, device: BiometricDevice) -> None:
        """Raises DeviceCommunicationError when the device does not answer its status endpoint."""

        self._get(device, "status", timeout=self.probe_timeout)

    def fetch_logs(self, device: BiometricDevice, *, since: Optional[datetime]) -> List[Dict[str, Any]]:
        params = {"since": since.isoformat() + "Z"} if since else None
        response = self._get(device, "logs", timeout=self.fetch_timeout, params=params)
        try:
            data = response.json()
        except ValueError as e:
            raise DeviceCommunicationError(f"Device '{device.name}' returned invalid JSON") from e

        if isinstance(data, dict):
            data = data.get("logs")
        if not isinstance(data, list):
            raise DeviceCommunicationError(f"Device '{device.name}' returned an unexpected log format")

        logger.info("Fetched %d log(s) from device %s", len(data), device.name)
        return data
