"""Tests for unit conversion parsing."""

import pytest

from smart_launcher.core.units import ALIASES, convert, parse_unit_conversion, resolve_unit


class TestUnitConversion:
    """Test explicit and implicit conversions."""

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("10 kilometers to miles", "6.21"),
            ("10km in miles", "6.21"),
            ("convert 3 feet to meters", "0.91"),
            ("1 gallon to liters", "3.79"),
            ("2 cups to ml", "473.18"),
            ("1 mile as km", "1.61"),
            ("100 km/h to mph", "62.14"),
            ("1 gib to mb", "1073.74"),
            ("1 atm to psi", "14.7"),
            ("90 minutes to hours", "1.5"),
            ("1 acre to square meters", "4046.86"),
        ],
    )
    def test_explicit_target(self, query, expected):
        results = parse_unit_conversion(query)

        assert len(results) == 1
        assert results[0].value == expected

    def test_implicit_target_uses_complementary_unit(self):
        results = parse_unit_conversion("57lbs")

        assert results[0].value == "25.85"
        assert results[0].label == "25.85 kilograms"

    def test_label_names_target_unit(self):
        assert parse_unit_conversion("10 kilometers to miles")[0].label == "6.21 miles"

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("10c to f", "50"),
            ("30°c to °f", "86"),
            ("30 ℃ to ℉", "86"),
            ("212 degrees f to c", "100"),
            ("0 k to c", "-273.15"),
            ("100f", "37.78"),
        ],
    )
    def test_temperature(self, query, expected):
        assert parse_unit_conversion(query)[0].value == expected

    def test_feet_and_inches(self):
        assert parse_unit_conversion("5'10\"")[0].value == "177.8"
        assert parse_unit_conversion("6'2\" to m")[0].value == "1.88"
        assert parse_unit_conversion("6’2” to m")[0].value == "1.88"

    def test_inches_alone(self):
        results = parse_unit_conversion('12" to cm')

        assert results[0].value == "30.48"
        assert results[0].label == "30.48 centimeters"

    def test_ounces_next_to_volume_are_fluid_ounces(self):
        assert parse_unit_conversion("8 oz to ml")[0].value == "236.59"
        assert parse_unit_conversion("8 oz to grams")[0].value == "226.8"

    @pytest.mark.parametrize(
        "query",
        [
            "10 km to kg",
            "10 parsecs to km",
            "hello",
            "10 minutes",
            "km to miles",
            "2 days ago",
        ],
    )
    def test_no_result(self, query):
        assert parse_unit_conversion(query) == []


class TestUnitLookup:
    """Test unit resolution and raw conversion."""

    def test_resolves_aliases_and_plurals(self):
        assert resolve_unit("km").name == "kilometers"
        assert resolve_unit("Kilometres".lower()).name == "kilometers"
        assert resolve_unit("yards").name == "yards"
        assert resolve_unit("°c").name == "celsius"
        assert resolve_unit("fl oz").name == "fluid ounces"
        assert resolve_unit("furlong") is None

    def test_convert_rejects_mismatched_families(self):
        with pytest.raises(ValueError):
            convert(1, ALIASES["meters"], ALIASES["grams"])

    def test_binary_and_decimal_data_units_differ(self):
        assert convert(1, ALIASES["kib"], ALIASES["bytes"]) == 1024
        assert convert(1, ALIASES["kb"], ALIASES["bytes"]) == 1000


class TestRoundTrip:
    """Converting there and back returns the original amount."""

    @pytest.mark.parametrize(
        "source,target",
        [
            ("kilometers", "miles"),
            ("meters", "feet"),
            ("centimeters", "inches"),
            ("kilograms", "pounds"),
            ("grams", "ounces"),
            ("liters", "gallons"),
            ("ml", "fl oz"),
            ("square meters", "square feet"),
            ("hectares", "acres"),
            ("km/h", "mph"),
            ("gb", "gib"),
            ("bar", "psi"),
            ("hours", "minutes"),
            ("celsius", "fahrenheit"),
            ("fahrenheit", "celsius"),
            ("celsius", "kelvin"),
        ],
    )
    def test_inverse_consistent(self, source, target):
        there = parse_unit_conversion(f"100 {source} to {target}")[0].value
        back = parse_unit_conversion(f"{there} {target} to {source}")[0].value

        assert float(back) == pytest.approx(100, rel=0.005)
