"""Vietcombank exchange rates and conversions through VND.

Rate precedence (VND is the bank's home currency):
  - into VND:   amount * buy(from)
  - out of VND: amount / sell(to)
  - cross:      amount * buy(from) / sell(to)
A missing ("-") buy or sell quote falls back to the transfer quote.
"""
from __future__ import annotations

import re
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol

from ..errors import UpstreamError, ValidationError

HOME = "VND"

_EXRATE_RE = re.compile(
    r'<Exrate CurrencyCode="(\w+)" CurrencyName="([^"]+)" '
    r'Buy="([^"]*)" Transfer="([^"]*)" Sell="([^"]*)"[^>]*/>'
)


@dataclass(frozen=True)
class Rate:
    name: str = ""
    buy: float = 0.0
    transfer: float = 0.0
    sell: float = 0.0


class RateSource(Protocol):
    def fetch(self) -> dict[str, Rate]: ...


def _quote(raw: str) -> float:
    raw = raw.strip().replace(",", "")
    if not raw or raw == "-":
        return 0.0
    try:
        return float(raw)
    except ValueError:
        return 0.0


def parse_rates(xml: str) -> dict[str, Rate]:
    rates: dict[str, Rate] = {}
    for m in _EXRATE_RE.finditer(xml):
        code, name, buy, transfer, sell = m.groups()
        t = _quote(transfer)
        rates[code] = Rate(
            name=name.strip(),
            buy=_quote(buy) or t,
            transfer=t,
            sell=_quote(sell) or t,
        )
    return rates


@dataclass
class VcbRateSource:
    url: str
    timeout: float = 15.0

    def fetch_xml(self) -> str:
        req = urllib.request.Request(self.url, headers={"User-Agent": "helperbot/1.0"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return resp.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, OSError) as e:
            raise UpstreamError(f"Failed to fetch exchange rates: {e}")

    def fetch(self) -> dict[str, Rate]:
        rates = parse_rates(self.fetch_xml())
        if not rates:
            raise UpstreamError("Failed to fetch exchange rates: no <Exrate> entries in response")
        return rates


def _amount(value: Any) -> float | int:
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(str(value).replace(",", "").strip())
    except ValueError:
        raise ValidationError(f"Invalid amount: {value!r}")


def convert(amount: Any, from_currency: str, to_currency: str, rates: dict[str, Rate]) -> dict[str, Any]:
    """Convert with a fixed rate snapshot; same inputs always give the same result."""
    amount = _amount(amount)
    src = (from_currency or "USD").strip().upper()
    dst = (to_currency or HOME).strip().upper()

    if src != HOME and src not in rates:
        raise UpstreamError(f"Currency {src} not found.")
    if dst != HOME and dst not in rates:
        raise UpstreamError(f"Currency {dst} not found.")

    if src == dst:
        result, rate = float(amount), 1.0
    elif src == HOME:
        rate = rates[dst].sell
        if not rate:
            raise UpstreamError(f"No sell rate quoted for {dst}.")
        result = amount / rate
    elif dst == HOME:
        rate = rates[src].buy
        if not rate:
            raise UpstreamError(f"No buy rate quoted for {src}.")
        result = amount * rate
    else:
        rate = rates[src].buy
        if not rate or not rates[dst].sell:
            raise UpstreamError(f"No rate quoted for {src}/{dst}.")
        result = amount * rate / rates[dst].sell

    return {
        "amount": amount,
        "from": src,
        "to": dst,
        "result": f"{result:.2f}",
        "rate": rate,
    }


def usd_sell_rate(source: RateSource) -> float | None:
    rate = source.fetch().get("USD")
    return rate.sell if rate else None
