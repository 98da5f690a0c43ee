"""Static airline tier classification.

Used for:
- Baggage warnings on self-transfer itineraries (validation report)
"""

# Tiers: "legacy" (full-service), "low_cost", "ultra_low_cost"
AIRLINE_TIERS: dict[str, str] = {
    # Africa: Legacy / Full-Service
    "SA": "legacy",   # South African Airways
    "ET": "legacy",   # Ethiopian Airlines
    "KQ": "legacy",   # Kenya Airways
    "WB": "legacy",   # RwandAir
    "MS": "legacy",   # EgyptAir
    "AT": "legacy",   # Royal Air Maroc
    "TC": "legacy",   # Air Tanzania
    "P4": "legacy",   # Air Peace
    # Africa: Low Cost
    "FA": "low_cost",  # FlySafair
    "4Z": "low_cost",  # Airlink
    "JE": "low_cost",  # Mango
    "FN": "low_cost",  # Fastjet
    # Europe: Legacy
    "BA": "legacy",   # British Airways
    "LH": "legacy",   # Lufthansa
    "AF": "legacy",   # Air France
    "KL": "legacy",   # KLM
    "TP": "legacy",   # TAP Air Portugal
    # Europe: Low Cost
    "U2": "low_cost",  # easyJet
    "S8": "low_cost",  # SmartWings
    # Europe: Ultra Low Cost
    "FR": "ultra_low_cost",  # Ryanair
    "W6": "ultra_low_cost",  # Wizz Air
    # Middle East / Gulf: Legacy (premium)
    "EK": "legacy",   # Emirates
    "QR": "legacy",   # Qatar Airways
    "EY": "legacy",   # Etihad
    "TK": "legacy",   # Turkish Airlines
    # Middle East: Low Cost
    "FZ": "low_cost",  # flydubai
    "G9": "low_cost",  # Air Arabia
    # North America: Legacy
    "AA": "legacy",   # American Airlines
    "DL": "legacy",   # Delta Air Lines
    "UA": "legacy",   # United Airlines
}

TIER_LABELS: dict[str, str] = {
    "legacy": "Full-Service",
    "low_cost": "Low Cost",
    "ultra_low_cost": "Ultra Low Cost",
    "unknown": "Other",
}


def get_tier(airline_code: str) -> str:
    """Get airline tier by IATA code. Returns 'unknown' for unmapped airlines."""
    return AIRLINE_TIERS.get(airline_code, "unknown")


def is_low_cost(airline_code: str) -> bool:
    """True for carriers that charge separately for checked bags."""
    return get_tier(airline_code) in ("low_cost", "ultra_low_cost")


def get_tier_label(airline_code: str) -> str:
    """Get human-readable tier label for an airline."""
    return TIER_LABELS.get(get_tier(airline_code), "Other")
