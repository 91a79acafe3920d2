from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Vai trò người dùng dùng cho phân quyền."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    EMPLOYEE = "employee"
    FACULTY = "faculty"
    STUDENT = "student"


# Roles that take part in punch tracking (staff and instructors).
EMPLOYEE_LIKE_ROLES = frozenset({Role.EMPLOYEE, Role.FACULTY})
ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPERADMIN})


class PunchState(str, Enum):
    """Trạng thái trong ngày của một bản ghi chấm công."""

    NOT_PUNCHED_IN = "NOT_PUNCHED_IN"
    PUNCHED_IN = "PUNCHED_IN"
    ON_BREAK = "ON_BREAK"
    PUNCHED_OUT = "PUNCHED_OUT"


class PunchType(str, Enum):
    IN = "in"
    OUT = "out"


class VerificationMode(str, Enum):
    """Phương thức xác thực do thiết bị báo về."""

    FINGER = "finger"
    THUMB = "thumb"
    FACE = "face"
    CARD = "card"
    PASSWORD = "password"
    RFID = "rfid"
    PALM = "palm"
    IRIS = "iris"
    MANUAL = "manual"


class DeliveryModel(str, Enum):
    PUSH = "push"
    PULL = "pull"


class DeviceVendor(str, Enum):
    GENERIC = "generic"
    EBIOSERVER = "ebioserver"


class DeviceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class EventOutcome(str, Enum):
    """Kết quả xử lý của một sự kiện thiết bị (lưu kèm nhật ký)."""

    APPLIED = "applied"
    REJECTED = "rejected"
    UNRESOLVED = "unresolved"
    MALFORMED = "malformed"
    FAILED = "failed"
