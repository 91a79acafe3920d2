from datetime import datetime
from unittest.mock import Mock

import pytest
import requests

from academy_attendance.core.enums import DeliveryModel, DeviceVendor
from academy_attendance.core.exceptions import DeviceCommunicationError
from academy_attendance.devices.client import DeviceClient
from academy_attendance.devices.model import BiometricDevice


def response(status=200, payload=None):
    r = Mock()
    r.status_code = status
    r.json.return_value = payload
    return r


def generic_device(**overrides) -> BiometricDevice:
    values = dict(
        device_id=1,
        name="Front gate",
        delivery_model=DeliveryModel.PULL,
        ip_address="10.0.0.5",
        port=8080,
        auth_key="secret",
    )
    values.update(overrides)
    return BiometricDevice(**values)


def test_generic_fetch_uses_ip_port_since_and_timeout():
    session = Mock()
    session.get.return_value = response(payload={"logs": [{"emp_code": "EMP001"}]})
    client = DeviceClient(fetch_timeout=10, session=session)

    logs = client.fetch_logs(generic_device(), since=datetime(2026, 3, 2, 8, 0))

    assert logs == [{"emp_code": "EMP001"}]
    session.get.assert_called_once_with(
        "http://10.0.0.5:8080/logs",
        headers={"Authorization": "Bearer secret"},
        params={"since": "2026-03-02T08:00:00Z"},
        timeout=10.0,
    )


def test_ebioserver_paths_and_api_version_header():
    session = Mock()
    session.get.return_value = response(payload=[{"emp_code": "EMP001"}])
    device = generic_device(vendor=DeviceVendor.EBIOSERVER, api_url="https://bio.academy.local/", auth_key=None)
    client = DeviceClient(session=session)

    assert client.fetch_logs(device, since=None) == [{"emp_code": "EMP001"}]
    args, kwargs = session.get.call_args
    assert args[0] == "https://bio.academy.local/api/attendance/logs"
    assert kwargs["headers"] == {"API-Version": "1.0"}
    assert kwargs["params"] is None


def test_probe_uses_probe_timeout():
    session = Mock()
    session.get.return_value = response()
    DeviceClient(probe_timeout=5, session=session).probe(generic_device())

    args, kwargs = session.get.call_args
    assert args[0] == "http://10.0.0.5:8080/status"
    assert kwargs["timeout"] == 5.0


@pytest.mark.parametrize(
    "side_effect",
    [requests.exceptions.Timeout("slow"), requests.exceptions.ConnectionError("refused")],
)
def test_network_errors_become_communication_errors(side_effect):
    session = Mock()
    session.get.side_effect = side_effect
    with pytest.raises(DeviceCommunicationError):
        DeviceClient(session=session).fetch_logs(generic_device(), since=None)


def test_bad_status_and_bad_body_are_communication_errors():
    session = Mock()
    session.get.return_value = response(status=503)
    with pytest.raises(DeviceCommunicationError):
        DeviceClient(session=session).fetch_logs(generic_device(), since=None)

    session.get.return_value = response(payload={"unexpected": True})
    with pytest.raises(DeviceCommunicationError):
        DeviceClient(session=session).fetch_logs(generic_device(), since=None)


def test_device_without_address_cannot_be_called():
    with pytest.raises(DeviceCommunicationError):
        DeviceClient(session=Mock()).probe(generic_device(ip_address=None, port=None))
