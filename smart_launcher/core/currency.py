"""Currency conversion parser, the only parser that performs network I/O."""

import logging
import re
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from smart_launcher.core.cache import MemoryCache
from smart_launcher.models.schemas import ExecutableCommand

if TYPE_CHECKING:
    from smart_launcher.core.plugins import PluginContext

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "$": "usd",
    "€": "eur",
    "£": "gbp",
    "¥": "jpy",
    "₽": "rub",
    "₹": "inr",
    "₩": "krw",
    "₿": "btc",
    "฿": "thb",
    "₴": "uah",
    "₺": "try",
    "₼": "azn",
    "₾": "gel",
}

SYMBOLS_BY_CODE = {code: symbol for symbol, code in CURRENCY_SYMBOLS.items()}

# Three-letter words that are not listed here never trigger a rate lookup
KNOWN_CURRENCIES = frozenset(
    {
        "aed", "ars", "aud", "bgn", "brl", "cad", "chf", "clp", "cny", "cop",
        "czk", "dkk", "egp", "eth", "hkd", "huf", "idr", "ils", "isk", "jod",
        "kes", "kwd", "ltc", "mad", "mxn", "myr", "ngn", "nok", "nzd", "pen",
        "php", "pkr", "pln", "qar", "ron", "rsd", "sar", "sek", "sgd", "twd",
        "vnd", "zar",
    }
    | set(CURRENCY_SYMBOLS.values())
)

ZERO_DECIMAL_CURRENCIES = {"jpy", "krw", "vnd", "isk", "clp"}
CRYPTO_CURRENCIES = {"btc", "eth", "ltc"}

CURRENCY_PATTERN = re.compile(
    r"^(?P<amount>\d+(?:\.\d+)?)\s*(?P<source>[a-z]{3})"
    r"(?:\s*(?:to|in)?\s*(?P<target>[a-z]{3}))?$"
)


def _normalize(query: str) -> str:
    text = query.strip().lower().replace(",", "")
    for symbol, code in CURRENCY_SYMBOLS.items():
        text = re.sub(rf"^{re.escape(symbol)}\s*(\d+(?:\.\d+)?)", rf"\1 {code}", text)
        text = text.replace(symbol, f" {code} ")
    return re.sub(r"\s+", " ", text).strip()


def _default_target(source: str, base_currency: str) -> str:
    """Single-currency input converts to the base, or away from it."""
    if source != base_currency:
        return base_currency
    return "eur" if base_currency == "usd" else "usd"


def format_currency(amount: float, code: str) -> str:
    if code in ZERO_DECIMAL_CURRENCIES:
        digits = 0
    elif code in CRYPTO_CURRENCIES:
        digits = 8
    else:
        digits = 2
    text = f"{amount:,.{digits}f}"
    symbol = SYMBOLS_BY_CODE.get(code)
    return f"{symbol}{text}" if symbol else f"{text} {code.upper()}"


async def fetch_rate_table(
    ticker: str, context: "PluginContext", cache: Optional[MemoryCache] = None
) -> Dict[str, float]:
    """Fetch the exchange rates of one currency against all others."""
    cache_key = f"rates:{ticker}"
    if cache is not None:
        cached = await cache.get(cache_key)
        if cached is not None:
            return cached

    url = context.settings.currency_api_url.format(ticker=ticker)
    response = await context.fetch(url)
    response.raise_for_status()
    payload = response.json()
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected rate payload for {ticker}")

    table = payload.get(ticker)
    if not isinstance(table, dict):
        table = payload
    rates = {
        str(code).lower(): float(rate)
        for code, rate in table.items()
        if isinstance(rate, (int, float)) and not isinstance(rate, bool)
    }
    if not rates:
        raise ValueError(f"No rates found for {ticker}")

    if cache is not None:
        await cache.set(cache_key, rates, ttl=context.settings.currency_cache_ttl)
    return rates


async def resolve_rate(
    source: str,
    target: str,
    context: "PluginContext",
    cache: Optional[MemoryCache] = None,
) -> float:
    rates = await fetch_rate_table(source, context, cache)
    if target in rates:
        return rates[target]

    inverse = (await fetch_rate_table(target, context, cache)).get(source)
    if not inverse:
        raise ValueError(f"No exchange rate between {source} and {target}")
    return 1 / inverse


def match_conversion(query: str, base_currency: str) -> Optional[Tuple[float, str, str]]:
    """Amount, source and target codes when the query is a currency conversion."""
    match = CURRENCY_PATTERN.match(_normalize(query))
    if not match:
        return None

    source = match.group("source")
    target = match.group("target") or _default_target(source, base_currency)
    if source not in KNOWN_CURRENCIES or target not in KNOWN_CURRENCIES:
        return None
    if source == target:
        return None
    return float(match.group("amount")), source, target


async def parse_currency_conversion(
    query: str, context: "PluginContext", cache: Optional[MemoryCache] = None
) -> List[ExecutableCommand]:
    """Convert "<amount><currency> [to <currency>]" using live rates.

    Failures to fetch or read the rate tables are reported through
    ``context.fail`` and produce no result.
    """
    conversion = match_conversion(query, context.settings.base_currency)
    if conversion is None:
        return []

    amount, source, target = conversion
    try:
        rate = await resolve_rate(source, target, context, cache)
    except Exception as e:
        logger.warning(f"Currency conversion {source}->{target} failed: {e}")
        context.fail(f"Failed to fetch exchange rates for {source.upper()}")
        return []

    converted = format_currency(amount * rate, target)
    return [ExecutableCommand.formula_result(converted)]
