"""
Links to the third-party maps embed. Rendering itself happens client-side.
"""

from typing import Optional
from urllib.parse import urlencode

GOOGLE_MAPS_URL = "https://www.google.com/maps"
GOOGLE_MAPS_EMBED_URL = "https://www.google.com/maps/embed/v1/place"


def maps_url(latitude: float, longitude: float) -> str:
    """Link that opens the position in Google Maps."""
    return f"{GOOGLE_MAPS_URL}?{urlencode({'q': f'{latitude},{longitude}'})}"


def maps_embed_url(
    latitude: float,
    longitude: float,
    api_key: Optional[str],
    zoom: int = 15,
) -> Optional[str]:
    """Iframe URL for the embed API, or None without an API key."""
    if not api_key:
        return None
    query = urlencode({"key": api_key, "q": f"{latitude},{longitude}", "zoom": zoom})
    return f"{GOOGLE_MAPS_EMBED_URL}?{query}"
