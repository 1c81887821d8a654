"""Exchange adapters implementing the RemoteFetcher port."""

from ratepipe.infrastructure.exchange.simulated_exchange import SimulatedExchangeClient
from ratepipe.infrastructure.exchange.factory import make_fetcher, SUPPORTED_EXCHANGES

__all__ = ["SimulatedExchangeClient", "make_fetcher", "SUPPORTED_EXCHANGES"]
