"""Derived portfolio views."""

from .portfolio_reader import PortfolioReader

__all__ = ["PortfolioReader"]
