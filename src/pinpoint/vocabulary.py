import re


def match_any_keyword(text: str, keywords) -> bool:
    """Check if any keyword appears in text as a whole word (not substring)."""
    lower = text.lower()
    return any(re.search(rf'\b{re.escape(kw)}\b', lower) for kw in keywords)


def keyword_alternation(keywords) -> str:
    """Regex alternation of keywords, longest first so aliases win over their parts."""
    ordered = sorted(keywords, key=len, reverse=True)
    return "|".join(re.escape(kw) for kw in ordered)


SENTINEL_VALUES = {
    "not provided", "n/a", "na", "unknown", "none", "tbd",
    "customer_name", "the customer", "me", "you",
}

# --- Numbers ---

WORD_TO_NUMBER = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19, "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "a couple": 2, "a couple of": 2, "couple": 2,
}

# Digits (with optional decimals/thousands) or a spelled-out number
NUMBER = rf"(?:(?:\d{{1,3}}(?:,\d{{3}})+|\d+)(?:\.\d+)?|{keyword_alternation(WORD_TO_NUMBER)})"


def to_number(token: str) -> float | None:
    """Convert "3", "1,200", "2.5" or "three" to a number; None if unparseable."""
    if token is None:
        return None
    cleaned = token.strip().lower()
    if cleaned in WORD_TO_NUMBER:
        return float(WORD_TO_NUMBER[cleaned])
    try:
        return float(cleaned.replace(",", ""))
    except ValueError:
        return None


def as_whole(value: float):
    """3.0 -> 3, 1.5 stays 1.5."""
    return int(value) if float(value).is_integer() else value


# --- Project scope ---

INTERIOR_KEYWORDS = {
    "interior", "inside", "indoor", "indoors", "bedroom", "kitchen",
    "living room", "bathroom", "hallway", "cabinets", "drywall",
}

EXTERIOR_KEYWORDS = {
    "exterior", "outside", "outdoor", "outdoors", "siding", "stucco",
    "fascia", "soffit", "soffits", "deck", "fence", "shutters", "porch",
}

BOTH_KEYWORDS = {"inside and out", "inside and outside", "interior and exterior", "both inside"}

AREA_KEYWORDS = {
    # Interior rooms
    "kitchen", "living room", "family room", "dining room", "great room",
    "master bedroom", "bedroom", "guest room", "kids room", "nursery",
    "master bath", "bathroom", "powder room", "half bath",
    "hallway", "foyer", "entryway", "stairwell", "staircase", "office",
    "den", "basement", "laundry room", "mudroom", "closet", "bonus room",
    "ceilings", "cabinets",
    # Exterior zones
    "siding", "trim", "fascia", "soffits", "front door", "garage door",
    "garage", "deck", "fence", "porch", "shutters", "railings",
}

# Plural forms map back onto the area name
AREA_PLURALS = {
    "bedrooms": "bedroom", "bathrooms": "bathroom", "closets": "closet",
    "hallways": "hallway", "offices": "office", "garages": "garage",
    "decks": "deck", "fences": "fence",
}

ROOM_COUNT_NOUNS = {"rooms", "room", "bedrooms", "bedroom", "bathrooms", "bathroom", "areas", "spaces"}

STREET_SUFFIXES = {
    "street", "st", "avenue", "ave", "drive", "dr", "road", "rd", "lane", "ln",
    "boulevard", "blvd", "court", "ct", "way", "place", "pl", "circle", "cir",
    "parkway", "pkwy", "terrace", "trail", "trl", "highway", "hwy", "loop",
}

# --- Crew ---

CREW_NOUNS = {
    "guys", "painters", "people", "men", "workers", "helpers", "employees",
    "guys on it", "painter", "person",
}

SOLO_PHRASES = {"just me", "solo", "by myself", "myself only", "only me", "one man show"}

# --- Paint ---

# Product name (as spoken) -> contractor price per gallon
PRODUCT_PRICES = {
    "duration": 75,
    "duration home": 72,
    "emerald": 88,
    "emerald urethane": 95,
    "superpaint": 65,
    "super paint": 65,
    "cashmere": 62,
    "promar 200": 40,
    "promar": 40,
    "property solutions": 32,
    "a-100": 45,
    "a100": 45,
    "proclassic": 72,
    "pro classic": 72,
    "problock": 45,
    "loxon": 52,
    "pro industrial": 62,
    "extreme bond": 62,
}

DEFAULT_PRICE_PER_GALLON = 55

# Words that can follow "gallons of" without naming a product
GENERIC_PAINT_WORDS = {"paint", "primer", "the", "that", "it", "this"}

MIN_GALLONS = 1
MAX_GALLONS = 100

CLASSIC_FAMILY_FINISH = "semi-gloss"
DEFAULT_FINISH = "flat"

# --- Colors ---

# Human color name -> Sherwin-Williams code
COLOR_CODES = {
    "alabaster": "SW 7008",
    "pure white": "SW 7005",
    "extra white": "SW 7006",
    "snowbound": "SW 7004",
    "dover white": "SW 6385",
    "agreeable gray": "SW 7029",
    "accessible beige": "SW 7036",
    "repose gray": "SW 7015",
    "mindful gray": "SW 7016",
    "sea salt": "SW 6204",
    "naval": "SW 6244",
    "tricorn black": "SW 6258",
    "iron ore": "SW 7069",
    "urbane bronze": "SW 7048",
    "evergreen fog": "SW 9130",
    "peppercorn": "SW 7674",
}

COLOR_AREA_QUALIFIERS = {
    "body", "trim", "door", "exterior", "walls", "ceiling",
    "accent", "siding", "shutters",
}

# --- Prep / scope of work ---

PREP_KEYWORDS = {
    "sand", "sanding", "patch", "patching", "caulk", "caulking",
    "prime", "priming", "scrape", "scraping", "mask", "masking",
    "tape", "taping", "clean", "cleaning", "prep", "prep work",
    "spot prime", "fill nail holes", "drywall repair", "degloss",
    "move furniture", "cover floors",
}

# Short form -> long form; the short form is dropped when both are present
PREP_SYNONYMS = {
    "sand": "sanding",
    "patch": "patching",
    "caulk": "caulking",
    "prime": "priming",
    "scrape": "scraping",
    "mask": "masking",
    "tape": "taping",
    "clean": "cleaning",
    "prep": "prep work",
}

# --- Names ---

NAME_DENYLIST = {
    # Products / brands
    "duration", "emerald", "superpaint", "cashmere", "promar", "proclassic",
    "loxon", "problock", "sherwin", "williams", "sherwin-williams", "behr",
    "benjamin", "moore", "valspar", "ppg",
    # Colors
    "naval", "alabaster", "snowbound", "agreeable", "accessible", "repose",
    "tricorn", "urbane", "peppercorn",
    # Calendar
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
    # Scope words spoken in title case
    "interior", "exterior", "the", "a", "an", "sure", "yes", "okay",
    # Surfaces spoken after "for"
    *COLOR_AREA_QUALIFIERS, "doors", "ceilings",
}


def validate_name(value: str | None) -> str:
    if not value:
        return ""
    cleaned = value.strip()
    if cleaned.lower() in SENTINEL_VALUES:
        return ""
    # Reject phone numbers used as names
    if re.match(r"^[\d+\-() ]{7,}$", cleaned):
        return ""
    if cleaned.split()[0].lower() in NAME_DENYLIST:
        return ""
    return cleaned
