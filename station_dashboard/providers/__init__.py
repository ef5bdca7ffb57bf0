from .base import HttpProvider, RequestConfig
from .ecowitt import EcowittClient, format_device_id, normalize_device_id
from .stormglass import StormglassClient

__all__ = [
    "HttpProvider",
    "RequestConfig",
    "EcowittClient",
    "StormglassClient",
    "format_device_id",
    "normalize_device_id",
]
