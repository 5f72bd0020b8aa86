"""Provider selection by configuration."""
from common.errors import ConfigurationError
from ingest.base import BaseProvider
from ingest.coingecko import CoinGeckoProvider
from ingest.coinpaprika import CoinPaprikaProvider

PROVIDERS: dict[str, type[BaseProvider]] = {
    CoinPaprikaProvider.name: CoinPaprikaProvider,
    CoinGeckoProvider.name: CoinGeckoProvider,
}


def get_provider(name: str, **kwargs) -> BaseProvider:
    try:
        cls = PROVIDERS[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown provider {name!r}; expected one of {sorted(PROVIDERS)}") from None
    return cls(**kwargs)
