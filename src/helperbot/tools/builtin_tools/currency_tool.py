from __future__ import annotations

from typing import Any

from ..base import ParamSpec, ToolDefinition
from ...services.currency import HOME, RateSource, convert


class ConvertCurrencyTool:
    definition = ToolDefinition(
        name="convert_currency",
        description=(
            "Get the current exchange rate and convert between currencies using "
            "Vietcombank rates. Use it for any exchange-rate question; if no amount "
            "is given, use 1."
        ),
        parameters={
            "amount": ParamSpec("NUMBER", "Amount to convert (default: 1)"),
            "from_currency": ParamSpec("STRING", "Source currency code (default: USD)"),
            "to_currency": ParamSpec("STRING", f"Target currency code (default: {HOME})"),
        },
    )

    def __init__(self, source: RateSource):
        self.source = source

    def invoke(self, args: dict[str, Any]) -> Any:
        amount = args.get("amount")
        # one snapshot per call
        rates = self.source.fetch()
        return convert(
            1 if amount is None else amount,
            args.get("from_currency") or "USD",
            args.get("to_currency") or HOME,
            rates,
        )
