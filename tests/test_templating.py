"""Tests for placeholder substitution."""

from unittest.mock import patch

import pytest

from webhookbridge.templating import (
    format_number,
    hsv_to_rgb,
    level_to_percent,
    render_color,
    render_level,
    render_template,
    render_time,
    round_half_up,
    to_hex,
)


class TestNumberHelpers:
    """Tests for rounding and number formatting."""

    def test_round_half_up(self):
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    def test_format_number_drops_trailing_zero(self):
        assert format_number(2.0) == "2"
        assert format_number(2.5) == "2.5"
        assert format_number(7) == "7"

    def test_to_hex_is_two_digits_lowercase(self):
        assert to_hex(10) == "0a"
        assert to_hex(254) == "fe"
        assert to_hex(-3) == "00"


class TestRenderLevel:
    """Tests for ${level.*} and ${intensity.*} placeholders."""

    @pytest.mark.parametrize("level", [0, 1, 2, 63, 127, 128, 200, 253, 254])
    def test_percent_and_hex_agree(self, level):
        """Percent is round(level/254*100) and hex is its two-digit form."""
        expected = round_half_up(level / 254 * 100)
        text = "${level.percent}|${level.percent.hex}|${level.previous_percent}|${level.previous_percent.hex}"
        assert render_level(text, level, level) == (
            f"{expected}|{expected:02x}|{expected}|{expected:02x}"
        )

    def test_half_level_is_fifty_percent(self):
        assert render_level("${level.percent}", 127, 0) == "50"
        assert level_to_percent(127) == 50

    def test_byte_and_decimal_percent(self):
        result = render_level("${level.byte}/${level.byte.hex}/${level.decimal_percent}", 127, 0)
        assert result == "127/7f/0.50"

    def test_intensity_prefix(self):
        assert render_level("${intensity.byte}", 200, 0) == "200"
        assert render_level("${intensity.percent}", 254, 0) == "100"

    def test_previous_values_use_stored_level(self):
        text = "${level.previous_byte},${level.previous_decimal_percent},${level.previous_byte.hex}"
        assert render_level(text, 254, 127) == "127,0.50,7f"

    def test_brightness_alias(self):
        assert render_level("b=${brightness}", 127, 0) == "b=50"

    def test_math_functions(self):
        assert render_level("${level.math(sqrt)}", 16, 0) == "4"
        assert render_level("${level.math(floor)}", 127.5, 0) == "127"
        assert render_level("${level.math(ceil)}", 127.2, 0) == "128"
        assert render_level("${level.math(round).hex}", 127.5, 0) == "80"

    def test_unknown_placeholders_pass_through(self):
        text = "${level.unknown} ${other.thing} ${level.percent"
        assert render_level(text, 127, 0) == text

    def test_placeholders_are_case_sensitive(self):
        assert render_level("${LEVEL.percent}", 127, 0) == "${LEVEL.percent}"


class TestRenderTime:
    """Tests for ${time.millis}."""

    def test_epoch_millis(self):
        with patch("webhookbridge.templating.time.time", return_value=1700000000.5):
            assert render_time("t=${time.millis}") == "t=1700000000500"


class TestColor:
    """Tests for HSV conversion and ${color.*} placeholders."""

    @pytest.mark.parametrize(
        "hsv,rgb",
        [
            ((0, 100, 100), (255, 0, 0)),
            ((120, 100, 100), (0, 255, 0)),
            ((240, 100, 100), (0, 0, 255)),
            ((0, 0, 100), (255, 255, 255)),
            ((0, 0, 0), (0, 0, 0)),
        ],
    )
    def test_fixed_points(self, hsv, rgb):
        assert hsv_to_rgb(*hsv) == rgb

    def test_hue_wraps_at_360(self):
        assert hsv_to_rgb(360, 100, 100) == (255, 0, 0)

    def test_color_placeholders(self):
        text = "${color.r},${color.g},${color.b} #${color.rgbx} ${color.rx}${color.gx}${color.bx}"
        assert render_color(text, 240, 100, 100) == "0,0,255 #0000ff 0000ff"

    def test_hsb_and_components(self):
        assert render_color("${color.hsb}|${color.h}|${color.s}", 30, 80, 50) == "30,80,50|30|80"


class TestRenderTemplate:
    """Tests for the combined pipeline."""

    def test_color_skipped_without_color_values(self):
        result = render_template("${level.percent} ${color.r}", 254, 0)
        assert result == "100 ${color.r}"

    def test_color_applied_when_hue_given(self):
        result = render_template("${level.byte} ${color.rgbx}", 254, 0, hue=0, saturation=100, brightness=100)
        assert result == "254 ff0000"

    def test_missing_color_components_default_to_zero(self):
        assert render_template("${color.rgbx}", 0, 0, hue=0) == "000000"

    def test_time_can_be_disabled(self):
        assert render_template("${time.millis}", 0, 0, include_time=False) == "${time.millis}"
