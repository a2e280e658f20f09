"""
Candle Source Interface

Defines the contract every market data provider implements.
"""

from abc import abstractmethod

from cryptopulse.services.base import BaseService
from cryptopulse.schemas.market import Candle, CryptoPrice, Timeframe


class CandleSource(BaseService):
    """
    Market Data Provider Contract.

    fetch_candles:
        INPUT:  symbol (e.g. "BTCUSDT"), interval, limit
        OUTPUT: list[Candle] ordered by ascending timestamp

    fetch_price:
        INPUT:  symbol
        OUTPUT: CryptoPrice (24h ticker)

    Both raise DataSourceError when the provider fails. Any retrying is
    done inside the provider, never by callers.
    """

    @abstractmethod
    async def fetch_candles(
        self,
        symbol: str,
        interval: Timeframe = Timeframe.H1,
        limit: int = 100,
    ) -> list[Candle]:
        """Fetch recent candles, oldest first."""
        pass

    @abstractmethod
    async def fetch_price(self, symbol: str) -> CryptoPrice:
        """Fetch the current 24h ticker."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
