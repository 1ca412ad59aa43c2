"""
Reverse geocoding and other time-bounded external lookups.

Lookups here are optional enrichment: every failure (timeout, network
error, bad response) becomes None and never aborts a submission.
"""
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Optional
import logging
import math
import threading

import requests

from imgverify.models import GpsCoordinates, MetadataResult

logger = logging.getLogger(__name__)

NOMINATIM_REVERSE_URL = 'https://nominatim.openstreetmap.org/reverse'
CACHE_PRECISION = 5  # ~1 m


class ReverseGeocoder:
    """Nominatim reverse lookup with an in-process cache."""

    def __init__(
        self,
        url: str = NOMINATIM_REVERSE_URL,
        timeout: float = 5.0,
        user_agent: str = 'ImageVerify/1.0',
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or requests.Session()
        self._cache: dict[tuple[float, float], Optional[str]] = {}
        self._lock = threading.Lock()

    def lookup(self, latitude: float, longitude: float) -> Optional[str]:
        """
        Return a display name for the coordinates, or None.

        Only successful responses are cached so transient failures are
        retried on the next lookup.
        """
        key = (round(latitude, CACHE_PRECISION), round(longitude, CACHE_PRECISION))
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        params = {
            'format': 'jsonv2',
            'lat': latitude,
            'lon': longitude,
            'zoom': 18,
            'addressdetails': 0,
            'accept-language': 'en',
        }
        headers = {'Accept': 'application/json', 'User-Agent': self.user_agent}

        try:
            response = self.session.get(self.url, params=params, headers=headers, timeout=self.timeout)
            if not response.ok:
                logger.warning(f"Reverse geocoding returned HTTP {response.status_code}")
                return None
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"Reverse geocoding failed: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Reverse geocoding returned invalid JSON: {e}")
            return None

        name = data.get('display_name') if isinstance(data, dict) else None
        if not isinstance(name, str) or not name:
            return None

        with self._lock:
            self._cache[key] = name
        return name


def attach_location_name(metadata: MetadataResult, geocoder: Optional[ReverseGeocoder]) -> MetadataResult:
    """
    Add a place name when both coordinates are present and finite.

    Returns the metadata unchanged when there is no geocoder or the GPS
    pair is incomplete.
    """
    latitude, longitude = metadata.gps.latitude, metadata.gps.longitude
    if geocoder is None or latitude is None or longitude is None:
        return metadata
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return metadata

    return metadata.with_location_name(geocoder.lookup(latitude, longitude))


def bounded_call(fn: Callable[[], Any], timeout: float) -> Any:
    """
    Run a collaborator with a deadline.

    Returns None if it raises or does not finish within timeout seconds.
    The worker thread is abandoned, not killed, on timeout.
    """
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning(f"External lookup timed out after {timeout}s")
        return None
    except Exception as e:
        logger.warning(f"External lookup failed: {e}")
        return None
    finally:
        executor.shutdown(wait=False)


def normalize_device_location(value: Any) -> Optional[GpsCoordinates]:
    """Validate a device-reported {latitude, longitude} pair."""
    coordinates = GpsCoordinates.from_dict(value)
    if not coordinates.is_complete:
        return None
    if not (-90 <= coordinates.latitude <= 90 and -180 <= coordinates.longitude <= 180):
        return None
    return coordinates
