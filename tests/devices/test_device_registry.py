import pytest

from academy_attendance.core.enums import DeliveryModel, DeviceStatus, DeviceVendor, Role
from academy_attendance.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DeviceNotFound,
    ValidationError,
)
from academy_attendance.events.model import DeviceIdentity


@pytest.fixture
def registry(container):
    return container.device_registry


def test_register_and_update(registry):
    device = registry.register(
        {"name": "Lab door", "delivery_model": "PULL", "vendor": "ebioserver", "api_url": "http://bio.local"}
    )
    assert device.device_id is not None
    assert device.delivery_model == DeliveryModel.PULL
    assert device.vendor == DeviceVendor.EBIOSERVER

    updated = registry.update(device.device_id, {"name": "Lab door 2", "port": "8081"})
    assert updated.name == "Lab door 2"
    assert updated.port == 8081
    assert registry.get(device.device_id) == updated


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"name": "X", "delivery_model": "carrier-pigeon"},
        {"name": "X", "delivery_model": "pull"},
        {"name": "X", "port": 70000},
    ],
)
def test_register_validation(registry, data):
    with pytest.raises(ValidationError):
        registry.register(data)


def test_only_superadmin_deletes(registry):
    device = registry.register({"name": "Hall"})
    with pytest.raises(AuthorizationError):
        registry.delete(device.device_id, current_role=Role.ADMIN)

    registry.delete(device.device_id, current_role=Role.SUPERADMIN)
    with pytest.raises(DeviceNotFound):
        registry.get(device.device_id)
    with pytest.raises(DeviceNotFound):
        registry.delete(device.device_id, current_role=Role.SUPERADMIN)


def test_connection_test_flips_status_only(registry, device_client):
    device = registry.register({"name": "Gym", "delivery_model": "pull", "ip_address": "10.0.0.8"})
    device_client.unreachable.add(device.device_id)

    after, ok, _ = registry.test_connection(device.device_id)
    assert ok is False
    assert after.status == DeviceStatus.INACTIVE
    assert after.last_sync_at is None
    assert after.consecutive_failures == 0

    device_client.unreachable.clear()
    after, ok, _ = registry.test_connection(device.device_id)
    assert ok is True
    assert after.status == DeviceStatus.ACTIVE


def test_push_device_without_address_is_reachable(registry):
    device = registry.register({"name": "Webhook only"})
    _, ok, _ = registry.test_connection(device.device_id)
    assert ok is True


def test_identify_precedence(registry):
    by_serial = registry.register({"name": "A", "serial_no": "SN1", "ip_address": "10.0.0.1"})
    by_ip = registry.register({"name": "B", "ip_address": "10.0.0.2"})

    assert registry.identify(DeviceIdentity(serial_no="SN1", ip_address="10.0.0.2")) == by_serial
    assert registry.identify(DeviceIdentity(serial_no="nope", ip_address="10.0.0.2")) == by_ip
    assert registry.identify(DeviceIdentity(device_name="B")) == by_ip
    assert registry.identify(DeviceIdentity()) is None


def test_find_or_register_push_checks_credentials(registry):
    device = registry.register({"name": "Secured", "serial_no": "SN5", "auth_key": "k-5"})

    assert registry.find_or_register_push(DeviceIdentity(serial_no="SN5", auth_key="k-5")) == device
    with pytest.raises(AuthenticationError):
        registry.find_or_register_push(DeviceIdentity(serial_no="SN5", auth_key="wrong"))
    with pytest.raises(AuthenticationError):
        registry.find_or_register_push(DeviceIdentity(device_id=device.device_id))


def test_pull_device_may_not_push(registry):
    registry.register({"name": "Puller", "delivery_model": "pull", "ip_address": "10.0.0.3"})
    with pytest.raises(ValidationError):
        registry.find_or_register_push(DeviceIdentity(ip_address="10.0.0.3"))


def test_unknown_sender_is_auto_registered(registry):
    created = registry.find_or_register_push(DeviceIdentity(serial_no="NEW-1", device_name="Side door"))
    assert created.device_id is not None
    assert created.name == "Side door"
    assert created.delivery_model == DeliveryModel.PUSH
    assert created.status == DeviceStatus.ACTIVE
    assert registry.find_or_register_push(DeviceIdentity()) is None


def test_failures_flip_device_inactive_at_threshold(registry):
    device = registry.register({"name": "Flaky", "delivery_model": "pull", "ip_address": "10.0.0.4"})
    for _ in range(2):
        assert registry.mark_failed(device.device_id).status == DeviceStatus.ACTIVE
    third = registry.mark_failed(device.device_id)
    assert third.status == DeviceStatus.INACTIVE
    assert third.consecutive_failures == 3
