"""
Exceptions raised by the soil data layer.
"""
from typing import Optional


class SoilDataError(Exception):
    """Base exception for soil data errors."""

    pass


class SdaTimeoutError(SoilDataError):
    """A Soil Data Access query did not finish within the client timeout."""

    pass


class SdaConnectionError(SoilDataError):
    """Network failure talking to Soil Data Access, or an undecodable response."""

    pass


class SdaServiceError(SoilDataError):
    """Soil Data Access answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"SDA API returned {status_code}: {body[:200]}")


class ProviderNotFoundError(SoilDataError):
    """No registered provider matches the requested name or location."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message)


class MapUnitNotFoundError(SoilDataError):
    """The requested map unit key does not exist upstream."""

    def __init__(self, mukey: str):
        self.mukey = mukey
        super().__init__(f"Map unit {mukey} not found")
