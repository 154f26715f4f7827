"""
Tests for GPS tracker SMS reply parsing
"""
import pytest

from transport_admin.models.base.enums import LocationSourceKind
from transport_admin.services.gps.sms_parser import UNPARSEABLE_MESSAGE, parse_sms_location

from tests.conftest import NOW


class TestReplyGrammars:

    def test_key_value_reply(self):
        result = parse_sms_location("Lat:13.0827,Lon:80.2707,Speed:42km/h,T:2025-01-22 12:00:00", now=NOW)

        assert result.success
        assert result.reading.latitude == 13.0827
        assert result.reading.longitude == 80.2707
        assert result.reading.speed == 42.0
        assert result.reading.source == LocationSourceKind.SMS
        assert result.reading.timestamp == NOW

    def test_key_value_without_speed(self):
        result = parse_sms_location("lat: -33.8688 lon: 151.2093", now=NOW)
        assert result.success
        assert result.reading.speed == 0.0
        assert result.reading.latitude == -33.8688

    def test_map_link_reply(self):
        result = parse_sms_location("Bus12 http://maps.google.com/maps?q=13.0827,80.2707", now=NOW)
        assert result.success
        assert (result.reading.latitude, result.reading.longitude) == (13.0827, 80.2707)

    def test_bare_pair_reply(self):
        result = parse_sms_location(" 12.9716, 77.5946 ", now=NOW)
        assert result.success
        assert result.reading.longitude == 77.5946

    def test_estimated_accuracy(self):
        assert parse_sms_location("12.9716,77.5946", now=NOW).reading.accuracy == 10.0


class TestUnparseable:

    @pytest.mark.parametrize("text", [
        None,
        "",
        "GPS not fixed, please retry",
        "http://maps.google.com/maps?q=somewhere",
        "0,0",
        "Lat:0,Lon:80.27",
        "95.0,80.0",
        "13.08,181.5",
    ])
    def test_reports_failure_without_raising(self, text):
        result = parse_sms_location(text, now=NOW)
        assert not result.success
        assert result.message == UNPARSEABLE_MESSAGE
        assert result.reading is None
