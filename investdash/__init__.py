"""InvestDash - portfolio, watchlist and alert tracking core."""

__version__ = "0.1.0"
