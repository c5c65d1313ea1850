"""Static pairwise correlation estimates between major coins.

A first approximation until correlations are computed from price history.
Pairs not listed are treated as weakly correlated.
"""

from decimal import Decimal
from typing import Iterable


DEFAULT_CORRELATION = Decimal("0.3")

_PAIR_CORRELATIONS: dict[frozenset[str], Decimal] = {
    frozenset({"BTC", "ETH"}): Decimal("0.85"),
    frozenset({"BTC", "BNB"}): Decimal("0.75"),
    frozenset({"BTC", "LTC"}): Decimal("0.80"),
    frozenset({"BTC", "BCH"}): Decimal("0.80"),
    frozenset({"ETH", "BNB"}): Decimal("0.75"),
    frozenset({"ETH", "MATIC"}): Decimal("0.78"),
    frozenset({"ETH", "LINK"}): Decimal("0.76"),
    frozenset({"ETH", "ARB"}): Decimal("0.80"),
    frozenset({"ETH", "OP"}): Decimal("0.80"),
    frozenset({"LTC", "BCH"}): Decimal("0.82"),
    frozenset({"SOL", "AVAX"}): Decimal("0.72"),
    frozenset({"DOGE", "SHIB"}): Decimal("0.80"),
}


def pair_correlation(a: str, b: str) -> Decimal:
    """Return the estimated correlation between two symbols."""
    if a == b:
        return Decimal("1")
    return _PAIR_CORRELATIONS.get(frozenset({a.upper(), b.upper()}), DEFAULT_CORRELATION)


def max_correlation(symbol: str, held_symbols: Iterable[str]) -> Decimal:
    """Return the highest correlation between ``symbol`` and any held symbol."""
    correlations = [pair_correlation(symbol, held) for held in held_symbols if held != symbol]
    return max(correlations, default=Decimal("0"))
