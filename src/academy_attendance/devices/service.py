from __future__ import annotations

import hmac
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..common.locks import KeyedLocks
from ..common.validators import optional_text, require_non_empty, require_port
from ..core.constants import DEFAULT_DEVICE_FAILURE_THRESHOLD
from ..core.enums import DeliveryModel, DeviceStatus, DeviceVendor, Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DeviceCommunicationError,
    DeviceNotFound,
    ValidationError,
)
from ..events.model import DeviceIdentity
from .client import DeviceClient
from .model import BiometricDevice
from .repository import DeviceRepository

logger = logging.getLogger(__name__)


def _enum_value(enum_cls, value: Any, field_name: str):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


class DeviceRegistry:
    """Device CRUD, reachability checks and sync bookkeeping."""

    def __init__(
        self,
        devices: DeviceRepository,
        client: DeviceClient,
        *,
        failure_threshold: int = DEFAULT_DEVICE_FAILURE_THRESHOLD,
        locks: Optional[KeyedLocks] = None,
    ):
        self._devices = devices
        self._client = client
        self._failure_threshold = max(1, int(failure_threshold))
        self._locks = locks or KeyedLocks()

    # ---- CRUD ----

    def _validated(self, base: BiometricDevice, data: Mapping[str, Any]) -> BiometricDevice:
        changes: dict = {}
        if "name" in data:
            changes["name"] = require_non_empty(data.get("name"), "name")
        if "delivery_model" in data:
            changes["delivery_model"] = _enum_value(DeliveryModel, data["delivery_model"], "delivery_model")
        if "vendor" in data:
            changes["vendor"] = _enum_value(DeviceVendor, data["vendor"], "vendor")
        if "status" in data:
            changes["status"] = _enum_value(DeviceStatus, data["status"], "status")
        if "port" in data:
            changes["port"] = require_port(data.get("port"))
        for key in ("ip_address", "api_url", "serial_no", "auth_key"):
            if key in data:
                changes[key] = optional_text(data.get(key))

        device = replace(base, **changes)
        if device.is_pull and not device.base_url:
            raise ValidationError("Pull devices need an api_url or ip_address")
        return device

    def register(self, data: Mapping[str, Any]) -> BiometricDevice:
        if not data.get("name"):
            raise ValidationError("name is required")
        device = self._validated(BiometricDevice(device_id=None, name=""), data)
        created = self._devices.create(device)
        logger.info("Registered %s device %s (%s)", created.delivery_model.value, created.device_id, created.name)
        return created

    def update(self, device_id: int, data: Mapping[str, Any]) -> BiometricDevice:
        with self._locks.hold(("device", device_id)):
            device = self._validated(self.get(device_id), data)
            return self._devices.update(device)

    def delete(self, device_id: int, *, current_role: Role) -> None:
        if current_role != Role.SUPERADMIN:
            raise AuthorizationError("Only a superadmin can delete devices")
        if not self._devices.delete(device_id):
            raise DeviceNotFound(f"Device {device_id} not found")
        logger.info("Deleted device %s", device_id)

    def get(self, device_id: int) -> BiometricDevice:
        device = self._devices.get(device_id)
        if not device:
            raise DeviceNotFound(f"Device {device_id} not found")
        return device

    def list(self) -> Sequence[BiometricDevice]:
        return self._devices.list_all()

    def list_active_pull(self) -> Sequence[BiometricDevice]:
        return [d for d in self._devices.list_all() if d.is_pull and d.is_active]

    # ---- reachability ----

    def test_connection(self, device_id: int) -> Tuple[BiometricDevice, bool, str]:
        """Probe the device and flip its status accordingly; nothing else changes."""

        with self._locks.hold(("device", device_id)):
            device = self.get(device_id)
            if not device.is_pull and not device.base_url:
                ok, message = True, "Push device without an address; reachable by definition"
            else:
                try:
                    self._client.probe(device)
                    ok, message = True, "Device is reachable"
                except DeviceCommunicationError as e:
                    ok, message = False, str(e)

            status = DeviceStatus.ACTIVE if ok else DeviceStatus.INACTIVE
            if device.status != status:
                device = self._devices.update(replace(device, status=status))
            logger.info("Connection test for device %s: %s", device_id, message)
            return device, ok, message

    # ---- push identification ----

    def identify(self, identity: DeviceIdentity) -> Optional[BiometricDevice]:
        if identity.device_id is not None:
            device = self._devices.get(identity.device_id)
            if device:
                return device
        if identity.auth_key:
            device = self._devices.find_by_auth_key(identity.auth_key)
            if device:
                return device
        if identity.serial_no:
            device = self._devices.find_by_serial_no(identity.serial_no)
            if device:
                return device
        if identity.ip_address:
            device = self._devices.find_by_ip_address(identity.ip_address)
            if device:
                return device
        if identity.device_name:
            return self._devices.find_by_name(identity.device_name)
        return None

    def find_or_register_push(self, identity: DeviceIdentity) -> Optional[BiometricDevice]:
        """Device that sent a push payload; unknown senders are registered as push devices.

        Returns None when the payload does not identify its sender at all.
        """

        device = self.identify(identity)
        if device is not None:
            if device.auth_key and not hmac.compare_digest(
                device.auth_key.encode("utf-8"), (identity.auth_key or "").encode("utf-8")
            ):
                raise AuthenticationError("Invalid device credential")
            if device.is_pull:
                raise ValidationError(f"Device '{device.name}' is configured for pull sync and cannot push")
            return device

        if identity.is_empty:
            return None

        name = identity.device_name or identity.serial_no or identity.ip_address or "Unnamed device"
        created = self._devices.create(
            BiometricDevice(
                device_id=None,
                name=name,
                delivery_model=DeliveryModel.PUSH,
                ip_address=identity.ip_address,
                serial_no=identity.serial_no,
                auth_key=identity.auth_key,
                status=DeviceStatus.ACTIVE,
            )
        )
        logger.info("Auto-registered push device %s (%s)", created.device_id, created.name)
        return created

    # ---- sync bookkeeping ----

    def mark_synced(self, device_id: int, *, at: datetime) -> BiometricDevice:
        with self._locks.hold(("device", device_id)):
            device = self.get(device_id)
            return self._devices.update(
                replace(device, status=DeviceStatus.ACTIVE, last_sync_at=at, consecutive_failures=0)
            )

    def mark_failed(self, device_id: int) -> BiometricDevice:
        with self._locks.hold(("device", device_id)):
            device = self.get(device_id)
            failures = device.consecutive_failures + 1
            status = device.status
            if failures >= self._failure_threshold and status == DeviceStatus.ACTIVE:
                status = DeviceStatus.INACTIVE
                logger.warning("Device %s marked inactive after %d consecutive failures", device_id, failures)
            return self._devices.update(replace(device, consecutive_failures=failures, status=status))
