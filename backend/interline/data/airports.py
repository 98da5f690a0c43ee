"""Airport reference data — countries, coordinates, hubs, metro areas, distances.

The built-in tables cover the African network plus the usual long-haul
connection points. A JSON file (``settings.reference_data_path``) can extend
or correct any table without a code change; its entries are merged over the
defaults.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from interline.config import settings

logger = logging.getLogger(__name__)

# IATA → (country ISO 3166-1 alpha-2, latitude, longitude)
AIRPORTS: dict[str, tuple[str, float, float]] = {
    # South Africa
    "JNB": ("ZA", -26.1392, 28.2460), "CPT": ("ZA", -33.9694, 18.5989),
    "DUR": ("ZA", -29.6144, 31.1197), "GRJ": ("ZA", -34.0056, 22.3789),
    "PLZ": ("ZA", -33.9849, 25.6173), "BFN": ("ZA", -29.0925, 26.3025),
    # Nigeria
    "LOS": ("NG", 6.5774, 3.3210), "ABV": ("NG", 9.0068, 7.2632),
    "PHC": ("NG", 5.0155, 6.9496),
    # Kenya
    "NBO": ("KE", -1.3192, 36.9275), "MBA": ("KE", -4.0347, 39.5942),
    # Ethiopia
    "ADD": ("ET", 8.9779, 38.7993),
    # Egypt
    "CAI": ("EG", 30.1219, 31.4056), "HRG": ("EG", 27.1783, 33.7994),
    # Ghana
    "ACC": ("GH", 5.6052, -0.1668),
    # Tanzania
    "DAR": ("TZ", -6.8781, 39.2026), "JRO": ("TZ", -3.4294, 37.0745),
    "ZNZ": ("TZ", -6.2220, 39.2249),
    # Morocco
    "CMN": ("MA", 33.3675, -7.5898), "RAK": ("MA", 31.6069, -8.0363),
    # West / East / Southern Africa
    "DKR": ("SN", 14.7397, -17.4902), "ABJ": ("CI", 5.2614, -3.9263),
    "EBB": ("UG", 0.0424, 32.4435), "KGL": ("RW", -1.9686, 30.1394),
    "MRU": ("MU", -20.4302, 57.6836), "LUN": ("ZM", -15.3308, 28.4526),
    "HRE": ("ZW", -17.9318, 31.0928), "MPM": ("MZ", -25.9208, 32.5726),
    "GBE": ("BW", -24.5552, 25.9182), "WDH": ("NA", -22.4799, 17.4709),
    # Middle East
    "DXB": ("AE", 25.2532, 55.3657), "AUH": ("AE", 24.4330, 54.6511),
    "DOH": ("QA", 25.2731, 51.6081), "IST": ("TR", 41.2753, 28.7519),
    # United Kingdom
    "LHR": ("GB", 51.4700, -0.4543), "LGW": ("GB", 51.1537, -0.1821),
    "STN": ("GB", 51.8860, 0.2389), "LTN": ("GB", 51.8747, -0.3683),
    # Europe
    "CDG": ("FR", 49.0097, 2.5479), "ORY": ("FR", 48.7262, 2.3652),
    "AMS": ("NL", 52.3105, 4.7683), "FRA": ("DE", 50.0379, 8.5622),
    "MUC": ("DE", 48.3537, 11.7750), "LIS": ("PT", 38.7742, -9.1342),
    # United States
    "JFK": ("US", 40.6413, -73.7781), "EWR": ("US", 40.6895, -74.1745),
    "LGA": ("US", 40.7769, -73.8740), "LAX": ("US", 33.9416, -118.4085),
    "ORD": ("US", 41.9742, -87.9073), "MDW": ("US", 41.7868, -87.7522),
    "ATL": ("US", 33.6407, -84.4277),
    # Canada / Asia-Pacific
    "YYZ": ("CA", 43.6777, -79.6248), "HKG": ("HK", 22.3080, 113.9185),
    "SIN": ("SG", 1.3644, 103.9915), "NRT": ("JP", 35.7720, 140.3929),
    "HND": ("JP", 35.5494, 139.7798), "SYD": ("AU", -33.9399, 151.1753),
    "AKL": ("NZ", -37.0082, 174.7850),
}

# Curated connection points worth trying for virtual interlining
MAJOR_HUBS: list[str] = [
    "JNB", "CPT", "ADD", "NBO", "LOS", "ACC", "CAI",
    "DXB", "DOH", "IST", "CDG", "LHR", "AMS",
]

# Airports where even airline-protected connections need extra time
LARGE_HUBS: list[str] = [
    "JNB", "CPT", "LOS", "NBO", "ADD", "CAI", "ACC", "DXB", "DOH",
    "LHR", "CDG", "AMS", "FRA", "IST", "JFK", "LAX", "HKG", "SIN",
]

# Multi-airport cities (metro code → airports)
METRO_AREAS: dict[str, list[str]] = {
    "LON": ["LHR", "LGW", "STN", "LTN"],
    "NYC": ["JFK", "EWR", "LGA"],
    "PAR": ["CDG", "ORY"],
    "TYO": ["HND", "NRT"],
    "CHI": ["ORD", "MDW"],
}

# Countries that typically require a transit visa even airside
TRANSIT_VISA_COUNTRIES: list[str] = ["US", "GB", "CA", "AU", "NZ"]

# Measured route distances (km); anything else falls back to great-circle
KNOWN_DISTANCES_KM: dict[str, float] = {
    "JNB-CPT": 1273, "JNB-DUR": 523, "JNB-LOS": 4546, "JNB-NBO": 2985,
    "LOS-ACC": 481, "LOS-LHR": 5103, "NBO-DXB": 3274, "ACC-JFK": 8543,
    "CPT-LHR": 9645, "ADD-IST": 3347, "CAI-DXB": 2222, "DXB-LHR": 5567,
    "JNB-SIN": 8765, "CPT-GRJ": 360,
}

DEFAULT_DISTANCE_KM = 1000.0
EARTH_RADIUS_KM = 6371.0


@dataclass
class ReferenceData:
    """Lookup tables used by the validator and the route stitcher."""

    airports: dict[str, tuple[str, float, float]] = field(default_factory=lambda: dict(AIRPORTS))
    major_hubs: list[str] = field(default_factory=lambda: list(MAJOR_HUBS))
    large_hubs: list[str] = field(default_factory=lambda: list(LARGE_HUBS))
    metro_areas: dict[str, list[str]] = field(default_factory=lambda: dict(METRO_AREAS))
    transit_visa_countries: list[str] = field(default_factory=lambda: list(TRANSIT_VISA_COUNTRIES))
    distances_km: dict[str, float] = field(default_factory=lambda: dict(KNOWN_DISTANCES_KM))

    def country(self, iata_code: str) -> str | None:
        entry = self.airports.get(iata_code)
        return entry[0] if entry else None

    def is_major_hub(self, iata_code: str) -> bool:
        return iata_code in self.major_hubs

    def is_large_hub(self, iata_code: str) -> bool:
        return iata_code in self.large_hubs

    def requires_transit_visa(self, iata_code: str) -> bool:
        return self.country(iata_code) in self.transit_visa_countries

    def metro_area(self, iata_code: str) -> str | None:
        for metro, members in self.metro_areas.items():
            if iata_code in members:
                return metro
        return None

    def is_airport_change(self, arrival_airport: str, departure_airport: str) -> bool:
        """True when two different airports serve the same city."""
        if arrival_airport == departure_airport:
            return False
        metro = self.metro_area(arrival_airport)
        return metro is not None and metro == self.metro_area(departure_airport)

    def is_international(self, from_airport: str, to_airport: str) -> bool:
        """Unknown airports are treated as international."""
        from_country = self.country(from_airport)
        to_country = self.country(to_airport)
        if not from_country or not to_country:
            return True
        return from_country != to_country

    def distance_km(self, from_airport: str, to_airport: str) -> float:
        """Known distance, else great-circle from coordinates, else a flat default."""
        known = self.distances_km.get(f"{from_airport}-{to_airport}")
        if known is None:
            known = self.distances_km.get(f"{to_airport}-{from_airport}")
        if known is not None:
            return float(known)

        a = self.airports.get(from_airport)
        b = self.airports.get(to_airport)
        if not a or not b:
            return DEFAULT_DISTANCE_KM
        return _haversine_km(a[1], a[2], b[1], b[2])


def _haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def load_reference_data(path: str | Path | None = None) -> ReferenceData:
    """Build reference data, merging an optional JSON override file over the defaults.

    The file may contain any of: ``airports`` ({code: [country, lat, lon]}),
    ``major_hubs``, ``large_hubs``, ``metro_areas``, ``transit_visa_countries``
    and ``distances_km``. Lists replace the defaults; dicts are merged.
    """
    data = ReferenceData()
    if not path:
        return data

    raw = json.loads(Path(path).read_text(encoding="utf-8"))

    for code, entry in raw.get("airports", {}).items():
        country, lat, lon = entry
        data.airports[code.upper()] = (country.upper(), float(lat), float(lon))
    data.metro_areas.update(raw.get("metro_areas", {}))
    data.distances_km.update({k.upper(): float(v) for k, v in raw.get("distances_km", {}).items()})

    for key in ("major_hubs", "large_hubs", "transit_visa_countries"):
        if key in raw:
            setattr(data, key, [c.upper() for c in raw[key]])

    logger.info(f"Loaded reference data overrides from {path}")
    return data


@lru_cache()
def get_reference_data() -> ReferenceData:
    """Process-wide reference data, honouring ``REFERENCE_DATA_PATH``."""
    return load_reference_data(settings.reference_data_path or None)
