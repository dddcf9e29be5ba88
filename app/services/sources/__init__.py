"""Third-party plant taxonomy sources."""

from .base import UpstreamClient
from .perenual import PerenualClient, normalize_perenual_plant
from .trefle import TrefleClient, normalize_trefle_plant

__all__ = [
    "UpstreamClient",
    "PerenualClient",
    "TrefleClient",
    "normalize_perenual_plant",
    "normalize_trefle_plant",
]
