"""Unit conversion parser: "10km to miles", "5'10\" to cm", "57lbs"."""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from smart_launcher.core.numbers import format_number
from smart_launcher.models.schemas import ExecutableCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unit:
    """A unit expressed as a multiple of its family's base unit."""

    name: str
    family: str
    factor: float = 1.0
    aliases: Tuple[str, ...] = field(default=(), compare=False)


UNITS: List[Unit] = [
    # length, base meter
    Unit("millimeters", "length", 0.001, ("mm", "millimeter", "millimetre", "millimetres")),
    Unit("centimeters", "length", 0.01, ("cm", "cms", "centimeter", "centimetre", "centimetres")),
    Unit("meters", "length", 1.0, ("m", "meter", "metre", "metres")),
    Unit("kilometers", "length", 1000.0, ("km", "kms", "kilometer", "kilometre", "kilometres")),
    Unit("inches", "length", 0.0254, ("in", "inch", '"')),
    Unit("feet", "length", 0.3048, ("ft", "foot", "'")),
    Unit("yards", "length", 0.9144, ("yd", "yds", "yard")),
    Unit("miles", "length", 1609.344, ("mi", "mile")),
    Unit("nautical miles", "length", 1852.0, ("nmi", "nautical mile")),
    # weight, base gram
    Unit("milligrams", "weight", 0.001, ("mg", "milligram")),
    Unit("grams", "weight", 1.0, ("g", "gr", "gram", "gramme", "grammes")),
    Unit("kilograms", "weight", 1000.0, ("kg", "kgs", "kilo", "kilos", "kilogram")),
    Unit("tonnes", "weight", 1_000_000.0, ("t", "tonne", "metric ton", "metric tons")),
    Unit("ounces", "weight", 28.349523125, ("oz", "ounce")),
    Unit("pounds", "weight", 453.59237, ("lb", "lbs", "pound")),
    Unit("stones", "weight", 6350.29318, ("st", "stone")),
    # volume, base liter
    Unit("milliliters", "volume", 0.001, ("ml", "milliliter", "millilitre", "millilitres")),
    Unit("liters", "volume", 1.0, ("l", "liter", "litre", "litres")),
    Unit("gallons", "volume", 3.785411784, ("gal", "gals", "gallon")),
    Unit("quarts", "volume", 0.946352946, ("qt", "qts", "quart")),
    Unit("pints", "volume", 0.473176473, ("pt", "pint")),
    Unit("cups", "volume", 0.2365882365, ("cup",)),
    Unit("fluid ounces", "volume", 0.0295735295625, ("fl oz", "floz", "fl. oz", "fluid ounce")),
    Unit("tablespoons", "volume", 0.01478676478125, ("tbsp", "tablespoon")),
    Unit("teaspoons", "volume", 0.00492892159375, ("tsp", "teaspoon")),
    Unit("cubic meters", "volume", 1000.0, ("m3", "m³", "cubic meter", "cubic metre", "cubic metres")),
    # area, base square meter
    Unit("square meters", "area", 1.0, ("m2", "m²", "sq m", "sqm", "square meter", "square metre", "square metres")),
    Unit("square feet", "area", 0.09290304, ("ft2", "ft²", "sq ft", "sqft", "square foot")),
    Unit("square kilometers", "area", 1_000_000.0, ("km2", "km²", "sq km", "square kilometer", "square kilometre")),
    Unit("square miles", "area", 2_589_988.110336, ("mi2", "mi²", "sq mi", "square mile")),
    Unit("acres", "area", 4046.8564224, ("ac", "acre")),
    Unit("hectares", "area", 10_000.0, ("ha", "hectare")),
    # speed, base meter per second
    Unit("meters per second", "speed", 1.0, ("m/s", "mps", "meter per second", "metres per second")),
    Unit("kilometers per hour", "speed", 1 / 3.6, ("km/h", "kmh", "kph", "kmph", "kilometer per hour", "kilometres per hour")),
    Unit("miles per hour", "speed", 0.44704, ("mph", "mi/h", "mile per hour")),
    Unit("knots", "speed", 1852 / 3600, ("kn", "kt", "kts", "knot")),
    # digital storage, base byte
    Unit("bits", "data", 0.125, ("bit",)),
    Unit("bytes", "data", 1.0, ("b", "byte")),
    Unit("kilobytes", "data", 1e3, ("kb", "kilobyte")),
    Unit("megabytes", "data", 1e6, ("mb", "megabyte")),
    Unit("gigabytes", "data", 1e9, ("gb", "gigabyte")),
    Unit("terabytes", "data", 1e12, ("tb", "terabyte")),
    Unit("kibibytes", "data", 1024.0, ("kib", "kibibyte")),
    Unit("mebibytes", "data", 1024.0**2, ("mib", "mebibyte")),
    Unit("gibibytes", "data", 1024.0**3, ("gib", "gibibyte")),
    Unit("tebibytes", "data", 1024.0**4, ("tib", "tebibyte")),
    # pressure, base pascal
    Unit("pascals", "pressure", 1.0, ("pa", "pascal")),
    Unit("kilopascals", "pressure", 1000.0, ("kpa", "kilopascal")),
    Unit("bars", "pressure", 100_000.0, ("bar",)),
    Unit("atmospheres", "pressure", 101_325.0, ("atm", "atmosphere")),
    Unit("psi", "pressure", 6894.757293168, ("pounds per square inch",)),
    # time, base second
    Unit("seconds", "time", 1.0, ("s", "sec", "secs", "second")),
    Unit("minutes", "time", 60.0, ("min", "mins", "minute")),
    Unit("hours", "time", 3600.0, ("h", "hr", "hrs", "hour")),
    Unit("days", "time", 86_400.0, ("d", "day")),
    Unit("weeks", "time", 604_800.0, ("wk", "wks", "week")),
    Unit("years", "time", 31_536_000.0, ("yr", "yrs", "year")),
    # temperature is converted through kelvin, see _to_kelvin
    Unit("celsius", "temperature", aliases=("c", "°c", "℃", "centigrade", "degc")),
    Unit("fahrenheit", "temperature", aliases=("f", "°f", "℉", "degf")),
    Unit("kelvin", "temperature", aliases=("k", "°k", "kelvins")),
]

ALIASES: Dict[str, Unit] = {}
for _unit in UNITS:
    for _alias in (_unit.name,) + _unit.aliases:
        ALIASES[_alias] = _unit

# Target used when the query names only a source unit
COMPLEMENTARY_UNITS = {
    "kilometers": "miles",
    "miles": "kilometers",
    "meters": "feet",
    "feet": "meters",
    "centimeters": "inches",
    "inches": "centimeters",
    "millimeters": "inches",
    "kilograms": "pounds",
    "pounds": "kilograms",
    "grams": "ounces",
    "ounces": "grams",
    "liters": "gallons",
    "gallons": "liters",
    "milliliters": "fluid ounces",
    "fluid ounces": "milliliters",
    "celsius": "fahrenheit",
    "fahrenheit": "celsius",
    "square meters": "square feet",
    "square feet": "square meters",
    "hectares": "acres",
    "acres": "hectares",
    "kilometers per hour": "miles per hour",
    "miles per hour": "kilometers per hour",
}

SEPARATOR = r"\s+(?:to|in|into|as)\s+"
AMOUNT = r"(?P<amount>[-+]?\d+(?:\.\d+)?)"
CONVERSION_PATTERN = re.compile(rf"^{AMOUNT}\s*(?P<source>.+?){SEPARATOR}(?P<target>.+)$")
SINGLE_PATTERN = re.compile(rf"^{AMOUNT}\s*(?P<source>[^\d\s].*)$")
FEET_INCHES_PATTERN = re.compile(
    r"^(?P<feet>\d+(?:\.\d+)?)\s*'\s*(?:(?P<inches>\d+(?:\.\d+)?)\s*\"?)?"
    rf"(?:{SEPARATOR}(?P<target>.+))?$"
)
INCHES_PATTERN = re.compile(
    rf"^(?P<inches>\d+(?:\.\d+)?)\s*\"(?:{SEPARATOR}(?P<target>.+))?$"
)


def resolve_unit(name: str) -> Optional[Unit]:
    """Look a unit up by name, abbreviation or symbol."""
    name = re.sub(r"\s+", " ", name.strip().rstrip("."))
    candidates = [name]
    if name.startswith("°"):
        candidates.append(name[1:].strip())
    if name.endswith("s") and len(name) > 2:
        candidates.append(name[:-1])
    for candidate in candidates:
        if candidate in ALIASES:
            return ALIASES[candidate]
    return None


def _to_kelvin(value: float, unit: Unit) -> float:
    if unit.name == "celsius":
        return value + 273.15
    if unit.name == "fahrenheit":
        return (value - 32) * 5 / 9 + 273.15
    return value


def _from_kelvin(value: float, unit: Unit) -> float:
    if unit.name == "celsius":
        return value - 273.15
    if unit.name == "fahrenheit":
        return (value - 273.15) * 9 / 5 + 32
    return value


def _reconcile_ounces(source: Unit, target: Unit) -> Tuple[Unit, Unit]:
    """Ounces next to a volume unit mean fluid ounces."""
    fluid_ounces = ALIASES["fluid ounces"]
    if source.family == "volume" and target.name == "ounces":
        target = fluid_ounces
    elif target.family == "volume" and source.name == "ounces":
        source = fluid_ounces
    return source, target


def convert(value: float, source: Unit, target: Unit) -> float:
    """Convert between two units of the same family."""
    if source.family != target.family:
        raise ValueError(f"Cannot convert {source.name} to {target.name}")
    if source.family == "temperature":
        return _from_kelvin(_to_kelvin(value, source), target)
    return value * source.factor / target.factor


def _normalize(query: str) -> str:
    text = query.strip().lower()
    text = re.sub(r"^convert\s+", "", text)
    text = re.sub(r"[’‘′`]", "'", text)
    text = re.sub(r"[”“″]|''", '"', text)
    text = text.replace("℃", "°c").replace("℉", "°f")
    return re.sub(r"\bdeg(?:ree)?s?\b\s*", "", text)


def _parse_request(text: str) -> Optional[Tuple[float, Unit, Optional[str]]]:
    """Split a query into amount, source unit and optional target name."""
    match = FEET_INCHES_PATTERN.match(text)
    if match:
        feet = float(match.group("feet"))
        if match.group("inches") is None:
            return feet, ALIASES["feet"], match.group("target")
        inches = feet * 12 + float(match.group("inches"))
        return inches, ALIASES["inches"], match.group("target")

    match = INCHES_PATTERN.match(text)
    if match:
        return float(match.group("inches")), ALIASES["inches"], match.group("target")

    match = CONVERSION_PATTERN.match(text)
    if match:
        source = resolve_unit(match.group("source"))
        if source is None:
            return None
        return float(match.group("amount")), source, match.group("target")

    match = SINGLE_PATTERN.match(text)
    if match:
        source = resolve_unit(match.group("source"))
        if source is None:
            return None
        return float(match.group("amount")), source, None

    return None


def parse_unit_conversion(query: str) -> List[ExecutableCommand]:
    """Convert "<amount><unit> [to <unit>]" into one formula result.

    Without an explicit target the conventional complementary unit is used
    (kilograms to pounds, celsius to fahrenheit, ...). Units without a
    complementary unit and unknown or mismatched pairs give no result.
    """
    request = _parse_request(_normalize(query))
    if request is None:
        return []

    amount, source, target_name = request
    if target_name is None:
        if source.name not in COMPLEMENTARY_UNITS:
            return []
        target: Optional[Unit] = ALIASES[COMPLEMENTARY_UNITS[source.name]]
    else:
        target = resolve_unit(target_name)
    if target is None:
        return []

    source, target = _reconcile_ounces(source, target)
    try:
        result = convert(amount, source, target)
    except (ValueError, ArithmeticError) as e:
        logger.debug(f"Unit conversion failed for {query!r}: {e}")
        return []

    value = format_number(result)
    return [ExecutableCommand.formula_result(value, label=f"{value} {target.name}")]
