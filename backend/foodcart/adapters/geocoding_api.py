from typing import Dict, Optional

from foodcart.adapters.http_client import ApiClient


class GeocodingClient:
    """
    Reverse geocoding against a Nominatim-style endpoint
    (GET /reverse?lat=..&lon=..&format=json).
    """

    def __init__(self, base_url: str, api: Optional[ApiClient] = None):
        self.api = api or ApiClient(base_url)

    def reverse(self, lat: float, lng: float) -> Dict[str, str]:
        body = self.api.get("reverse", params={"lat": lat, "lon": lng, "format": "json"})
        address = body.get("address", {}) if isinstance(body, dict) else {}
        street = " ".join(
            p for p in (address.get("house_number"), address.get("road")) if p
        )
        return {
            "street": street,
            "city": address.get("city") or address.get("town") or address.get("village") or "",
            "state": address.get("state") or "",
        }
