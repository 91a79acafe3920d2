from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from ..core.enums import DeliveryModel, DeviceStatus, DeviceVendor
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import BiometricDevice
from .repository import DeviceRepository

_COLUMNS = """
    device_id, name, delivery_model, vendor, ip_address, port, api_url, serial_no,
    auth_key, status, last_sync_at, consecutive_failures
"""


def _to_device(r: dict) -> BiometricDevice:
    return BiometricDevice(
        device_id=int(r["device_id"]),
        name=r["name"],
        delivery_model=DeliveryModel(r["delivery_model"]),
        vendor=DeviceVendor(r.get("vendor") or DeviceVendor.GENERIC.value),
        ip_address=r.get("ip_address"),
        port=int(r["port"]) if r.get("port") is not None else None,
        api_url=r.get("api_url"),
        serial_no=r.get("serial_no"),
        auth_key=r.get("auth_key"),
        status=DeviceStatus(r["status"]),
        last_sync_at=r.get("last_sync_at"),
        consecutive_failures=int(r.get("consecutive_failures") or 0),
    )


def _params(d: BiometricDevice) -> tuple:
    return (
        d.name,
        d.delivery_model.value,
        d.vendor.value,
        d.ip_address,
        d.port,
        d.api_url,
        d.serial_no,
        d.auth_key,
        d.status.value,
        d.last_sync_at,
        d.consecutive_failures,
    )


class MySQLDeviceRepository(DeviceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _find_one(self, where: str, value) -> Optional[BiometricDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM biometric_devices WHERE {where} ORDER BY device_id ASC LIMIT 1",
                (value,),
            )
            r = fetchone(cur)
            return _to_device(r) if r else None

    def get(self, device_id: int) -> Optional[BiometricDevice]:
        return self._find_one("device_id=%s", int(device_id))

    def list_all(self) -> Sequence[BiometricDevice]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM biometric_devices ORDER BY device_id ASC")
            return [_to_device(r) for r in fetchall(cur)]

    def find_by_auth_key(self, auth_key: str) -> Optional[BiometricDevice]:
        return self._find_one("auth_key=%s", auth_key)

    def find_by_serial_no(self, serial_no: str) -> Optional[BiometricDevice]:
        return self._find_one("serial_no=%s", serial_no)

    def find_by_ip_address(self, ip_address: str) -> Optional[BiometricDevice]:
        return self._find_one("ip_address=%s", ip_address)

    def find_by_name(self, name: str) -> Optional[BiometricDevice]:
        return self._find_one("name=%s", name)

    def create(self, device: BiometricDevice) -> BiometricDevice:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO biometric_devices(
                    name, delivery_model, vendor, ip_address, port, api_url, serial_no,
                    auth_key, status, last_sync_at, consecutive_failures
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(device),
            )
            return replace(device, device_id=int(cur.lastrowid))

    def update(self, device: BiometricDevice) -> BiometricDevice:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE biometric_devices
                SET name=%s, delivery_model=%s, vendor=%s, ip_address=%s, port=%s, api_url=%s,
                    serial_no=%s, auth_key=%s, status=%s, last_sync_at=%s, consecutive_failures=%s
                WHERE device_id=%s
                """,
                _params(device) + (device.device_id,),
            )
            return device

    def delete(self, device_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM biometric_devices WHERE device_id=%s", (int(device_id),))
            return cur.rowcount > 0
