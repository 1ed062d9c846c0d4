"""
Model conversion tests.
"""
import pytest
from pydantic import ValidationError

from checkup.storage.models import (
    Alert,
    AlertSeverity,
    ChannelKind,
    MonitoredTarget,
    NotificationChannelConfig,
    TargetState,
)


class TestMonitoredTarget:
    def test_config_json_text_is_parsed(self):
        target = MonitoredTarget(id=1, name="a", type="http", host="h", config='{"x": 1}')
        assert target.config == {"x": 1}

    def test_empty_config(self):
        assert MonitoredTarget(id=1, name="a", type="http", host="h", config=None).config == {}
        assert MonitoredTarget(id=1, name="a", type="http", host="h", config="").config == {}

    def test_status_from_string(self):
        target = MonitoredTarget(id=1, name="a", type="http", host="h", status="offline")
        assert target.status == TargetState.OFFLINE

    def test_unknown_status_reads_as_unknown(self):
        target = MonitoredTarget(id=1, name="a", type="http", host="h", status="sleeping")
        assert target.status == TargetState.UNKNOWN

    def test_unparseable_config_is_empty(self):
        target = MonitoredTarget(id=1, name="a", type="http", host="h", config="{not json")
        assert target.config == {}

    def test_non_object_config_is_empty(self):
        assert MonitoredTarget(id=1, name="a", type="http", host="h", config="[1, 2]").config == {}


class TestAlert:
    def test_defaults(self):
        alert = Alert(type="service_down", title="t", message="m")

        assert alert.severity == AlertSeverity.INFO
        assert alert.resolved is False
        assert alert.created_at.tzinfo is not None


class TestNotificationChannelConfig:
    def test_gotify_maps_to_push(self):
        channel = NotificationChannelConfig(type="gotify", config="{}")
        assert channel.type == ChannelKind.PUSH

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            NotificationChannelConfig(type="carrier_pigeon")
