from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import BiometricDevice


class DeviceRepository(Protocol):
    def get(self, device_id: int) -> Optional[BiometricDevice]:
        raise NotImplementedError

    def list_all(self) -> Sequence[BiometricDevice]:
        raise NotImplementedError

    def find_by_auth_key(self, auth_key: str) -> Optional[BiometricDevice]:
        raise NotImplementedError

    def find_by_serial_no(self, serial_no: str) -> Optional[BiometricDevice]:
        raise NotImplementedError

    def find_by_ip_address(self, ip_address: str) -> Optional[BiometricDevice]:
        raise NotImplementedError

    def find_by_name(self, name: str) -> Optional[BiometricDevice]:
        raise NotImplementedError

    def create(self, device: BiometricDevice) -> BiometricDevice:
        raise NotImplementedError

    def update(self, device: BiometricDevice) -> BiometricDevice:
        raise NotImplementedError

    def delete(self, device_id: int) -> bool:
        raise NotImplementedError
