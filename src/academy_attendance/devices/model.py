from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import DeliveryModel, DeviceStatus, DeviceVendor


@dataclass(frozen=True)
class BiometricDevice:
    """Thực thể miền (domain): Thiết bị chấm công sinh trắc học.

    `last_sync_at` là mốc (watermark) của lần đồng bộ thành công gần nhất.
    """

    device_id: Optional[int]
    name: str
    delivery_model: DeliveryModel = DeliveryModel.PUSH
    vendor: DeviceVendor = DeviceVendor.GENERIC
    ip_address: Optional[str] = None
    port: Optional[int] = None
    api_url: Optional[str] = None
    serial_no: Optional[str] = None
    auth_key: Optional[str] = None
    status: DeviceStatus = DeviceStatus.ACTIVE
    last_sync_at: Optional[datetime] = None
    consecutive_failures: int = 0

    @property
    def is_active(self) -> bool:
        return self.status == DeviceStatus.ACTIVE

    @property
    def is_pull(self) -> bool:
        return self.delivery_model == DeliveryModel.PULL

    @property
    def base_url(self) -> Optional[str]:
        if self.api_url:
            return self.api_url.rstrip("/")
        if self.ip_address:
            if self.port:
                return f"http://{self.ip_address}:{self.port}"
            return f"http://{self.ip_address}"
        return None
