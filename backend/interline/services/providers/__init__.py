"""Flight providers.

Modules:
    base            FlightProvider interface, ProviderError, ticket leg helper
    kiwi            Kiwi/Tequila search; the only provider with multi-leg links
    travelpayouts   Aviasales search and affiliate links
    skyscanner      Skyscanner live search and referral links
"""

from interline.services.providers.base import FlightProvider, ProviderError
from interline.services.providers.kiwi import KiwiProvider
from interline.services.providers.skyscanner import SkyscannerProvider
from interline.services.providers.travelpayouts import TravelpayoutsProvider


def default_providers() -> list[FlightProvider]:
    """One instance of every configured provider."""
    return [KiwiProvider(), TravelpayoutsProvider(), SkyscannerProvider()]


__all__ = [
    "FlightProvider",
    "KiwiProvider",
    "ProviderError",
    "SkyscannerProvider",
    "TravelpayoutsProvider",
    "default_providers",
]
