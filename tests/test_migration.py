"""Tests for the ha-bridge migration converter."""

import json

import pytest

from webhookbridge.bridge.config import PlatformConfig
from webhookbridge.migration import (
    convert_devices,
    default_output_path,
    detect_method,
    generate_unique_id,
    main,
    parse_endpoint,
    parse_url_array,
)


def url_array(url, **extra):
    """Encode a URL the way ha-bridge stores it."""
    return json.dumps([{"item": url, "type": "httpDevice", **extra}])


class TestHelpers:
    """Tests for the per-field helpers."""

    def test_parse_url_array(self):
        assert parse_url_array(url_array("http://h/on")) == "http://h/on"
        assert parse_url_array([{"item": "http://h/x"}]) == "http://h/x"

    @pytest.mark.parametrize("value", [None, "", "not json", "[]", '[{"type": "x"}]', '{"item": "x"}'])
    def test_parse_url_array_invalid(self, value):
        assert parse_url_array(value) is None

    def test_detect_method(self):
        assert detect_method(url_array("http://h", httpVerb="POST")) == "POST"
        assert detect_method("[{'item': 'http://h', 'httpVerb': 'PUT'}]") == "PUT"
        assert detect_method(url_array("http://h")) == "GET"

    def test_parse_endpoint_decodes_and_substitutes(self):
        record = {"mapId": "zone7"}
        endpoint = parse_endpoint("http://h/set%3Fid%3D${device.mapId}", record)
        assert endpoint == {"method": "GET", "url": "http://h/set?id=zone7"}

    def test_unique_id_hash(self):
        # "a" -> 97, "ab" -> 97 * 31 + 98
        assert generate_unique_id("a") == "webhook-00000061"
        assert generate_unique_id("ab") == f"webhook-{97 * 31 + 98:08x}"
        assert generate_unique_id("") == "webhook-00000000"

    def test_unique_id_wraps_at_32_bits(self):
        name = "Living Room Ceiling Light"
        expected = 0
        for char in name:
            expected = (expected * 31 + ord(char)) % 2**32
        assert generate_unique_id(name) == f"webhook-{expected:08x}"

    def test_unique_id_uses_utf16_code_units(self):
        # U+1F4A1 is a surrogate pair in UTF-16
        expected = ((0xD83D * 31) + 0xDCA1) % 2**32
        assert generate_unique_id("\U0001F4A1") == f"webhook-{expected:08x}"

    def test_default_output_path(self, tmp_path):
        assert default_output_path(tmp_path / "device.db") == tmp_path / "device-migrated.json"


class TestConvertDevices:
    """Tests for batch conversion."""

    def test_inactive_and_color_only_are_skipped(self):
        result = convert_devices(
            [
                {"name": "Old", "inactive": True, "onUrl": url_array("http://h/on")},
                {"name": "Strip", "colorUrl": url_array("http://h/color")},
            ]
        )
        assert result.converted_count == 0
        assert result.skipped_count == 2
        assert result.config["webhooks"] == {}

    def test_switch_record(self):
        result = convert_devices(
            [
                {
                    "name": "Fan",
                    "deviceType": "switch",
                    "uniqueid": "00:17:88:01",
                    "onUrl": url_array("http://h/on", httpVerb="POST"),
                    "offUrl": url_array("http://h/off"),
                }
            ]
        )
        webhook = result.config["webhooks"]["Fan"]
        assert webhook == {
            "deviceType": "Switch",
            "uniqueId": "habridge-00178801",
            "on": {"method": "POST", "url": "http://h/on"},
            "off": {"method": "GET", "url": "http://h/off"},
        }
        assert result.converted_count == 1

    def test_dimmer_maps_to_brightness(self):
        result = convert_devices(
            [{"name": "Lamp", "onUrl": url_array("http://h/on"), "dimUrl": url_array("http://h/dim?l=${intensity.percent}")}]
        )
        webhook = result.config["webhooks"]["Lamp"]
        assert webhook["deviceType"] == "DimmableLight"
        assert webhook["brightness"]["url"] == "http://h/dim?l=${intensity.percent}"
        assert webhook["uniqueId"] == generate_unique_id("Lamp")

    def test_cover_maps_dim_to_position(self):
        result = convert_devices(
            [{"name": "Tapparella", "dimUrl": url_array("http://h/pos/${device.mapId}"), "mapId": "3"}]
        )
        webhook = result.config["webhooks"]["Tapparella"]
        assert webhook["deviceType"] == "CoverLift"
        assert webhook["coverPosition"] == {"method": "GET", "url": "http://h/pos/3"}
        assert "brightness" not in webhook

    def test_color_light(self):
        result = convert_devices(
            [
                {
                    "name": "Bulb",
                    "onUrl": url_array("http://h/on"),
                    "dimUrl": url_array("http://h/dim"),
                    "colorUrl": url_array("http://h/rgb"),
                }
            ]
        )
        webhook = result.config["webhooks"]["Bulb"]
        assert webhook["deviceType"] == "ExtendedColorLight"
        assert webhook["brightness"]["url"] == "http://h/dim"
        assert webhook["colorHue"]["url"] == "http://h/rgb"

    def test_bad_record_does_not_abort_batch(self):
        result = convert_devices(["garbage", {"name": "Fan", "onUrl": url_array("http://h/on")}])
        assert result.skipped_count == 1
        assert result.converted_count == 1
        assert [o.accepted for o in result.outcomes] == [False, True]

    def test_unnamed_record(self):
        result = convert_devices([{"id": "12", "onUrl": url_array("http://h/on")}])
        assert "Device 12" in result.config["webhooks"]

    def test_output_is_loadable(self):
        result = convert_devices([{"name": "Fan", "onUrl": url_array("http://h/on")}])
        config = PlatformConfig.from_dict(result.config)
        assert config.webhooks["Fan"].first_command("on").url == "http://h/on"


class TestMain:
    """Tests for the command line entry point."""

    def test_writes_default_output(self, tmp_path, capsys):
        source = tmp_path / "device.db"
        source.write_text(json.dumps([{"name": "Fan", "onUrl": url_array("http://h/on")}, {"name": "X", "inactive": True}]))

        assert main([str(source)]) == 0

        output = json.loads((tmp_path / "device-migrated.json").read_text())
        assert list(output["webhooks"]) == ["Fan"]
        out = capsys.readouterr().out
        assert "Converted: 1 devices" in out
        assert "Skipped:   1 devices" in out

    def test_explicit_output(self, tmp_path):
        source = tmp_path / "device.db"
        source.write_text("[]")
        target = tmp_path / "out.json"

        assert main([str(source), str(target)]) == 0
        assert json.loads(target.read_text())["webhooks"] == {}

    def test_missing_input(self, tmp_path):
        assert main([str(tmp_path / "nope.db")]) == 1

    def test_no_arguments_prints_usage(self, capsys):
        assert main([]) == 1
        assert "webhookbridge-migrate device.db" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path):
        source = tmp_path / "device.db"
        source.write_text("{not json")
        assert main([str(source)]) == 1
        assert not (tmp_path / "device-migrated.json").exists()

    def test_non_array(self, tmp_path):
        source = tmp_path / "device.db"
        source.write_text('{"devices": []}')
        assert main([str(source)]) == 1
