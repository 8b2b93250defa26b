"""Rule-based field extraction from a voice estimate conversation.

Every pass re-reads the whole transcript, so running it twice over the same
turns finds the same evidence. Each field is an ordered table of ``Rule``s.
Matches of a higher rule claim their span of text; among the surviving
matches the one spoken last wins. Scalars are only rewritten when that
winning value changes, so a value set since by a tool call stays put.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from pinpoint.draft import AddOn, ColorAssignment, Draft, PaintItem
from pinpoint.transcript import joined_text
from pinpoint.vocabulary import (
    AREA_KEYWORDS,
    AREA_PLURALS,
    BOTH_KEYWORDS,
    CLASSIC_FAMILY_FINISH,
    COLOR_AREA_QUALIFIERS,
    COLOR_CODES,
    CREW_NOUNS,
    DEFAULT_FINISH,
    DEFAULT_PRICE_PER_GALLON,
    EXTERIOR_KEYWORDS,
    GENERIC_PAINT_WORDS,
    INTERIOR_KEYWORDS,
    MAX_GALLONS,
    MIN_GALLONS,
    NAME_DENYLIST,
    NUMBER,
    PREP_KEYWORDS,
    PREP_SYNONYMS,
    PRODUCT_PRICES,
    ROOM_COUNT_NOUNS,
    SOLO_PHRASES,
    STREET_SUFFIXES,
    as_whole,
    keyword_alternation,
    match_any_keyword,
    to_number,
    validate_name,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern
    extract: Callable[[re.Match], Any]


def _rule(name: str, pattern: str, extract: Callable[[re.Match], Any], flags: int = 0) -> Rule:
    return Rule(name, re.compile(pattern, flags), extract)


def find_all(rules: list[Rule], text: str) -> list[tuple[re.Match, Any]]:
    """All valid matches in text order; lower rules cannot reuse text a higher rule matched."""
    claimed: list[tuple[int, int]] = []
    hits = []
    for rule in rules:
        for match in rule.pattern.finditer(text):
            start, end = match.span()
            if any(start < c_end and c_start < end for c_start, c_end in claimed):
                continue
            value = rule.extract(match)
            if value is None:
                continue
            claimed.append((start, end))
            hits.append((match, value))
    hits.sort(key=lambda hit: hit[0].start())
    return hits


def resolve(rules: list[Rule], text: str):
    """Value of the most recent valid match, or None."""
    hits = find_all(rules, text)
    if not hits:
        return None
    return hits[-1][1]


def _number_in(low: float, high: float, group: int | str = 1, offset: float = 0.0):
    def extract(match: re.Match):
        value = to_number(match.group(group))
        if value is None:
            return None
        value += offset
        if not low <= value <= high:
            return None
        return as_whole(value)
    return extract


def _constant(value):
    return lambda match: value


# --- Customer name ---

_NAME_TOKEN = r"[A-Z][a-zA-Z'\-]+"
_NAME = rf"({_NAME_TOKEN}(?:[ \t]+{_NAME_TOKEN}){{0,2}})"


def _clean_name(match: re.Match) -> str | None:
    tokens = match.group(1).split()
    while tokens and tokens[-1].lower() in NAME_DENYLIST:
        tokens.pop()
    return validate_name(" ".join(tokens)) or None


_BARE_FOR = _rule("for", rf"(?i:\bfor)\s+(?:(?i:the)\s+)?{_NAME}", _clean_name)

NAME_RULES = [
    _rule("customer_is", rf"(?i:\bcustomer(?:'s)?\s+(?:name\s+)?is)\s+(?:(?i:the)\s+)?{_NAME}", _clean_name),
    _rule("its_for", rf"(?i:\b(?:it's|it is|this is|this one's|job is)\s+for)\s+(?:(?i:the)\s+)?{_NAME}", _clean_name),
    _BARE_FOR,
]


def resolve_name(text: str) -> str | None:
    """Most recent explicit name phrase; a bare "for X" only counts on its first mention."""
    hits = find_all(NAME_RULES, text)
    explicit = [value for match, value in hits if match.re is not _BARE_FOR.pattern]
    if explicit:
        return explicit[-1]
    return hits[0][1] if hits else None


# --- Address / contact ---

_SUFFIX = keyword_alternation(STREET_SUFFIXES)


def _clean_address(match: re.Match) -> str | None:
    value = match.group(1).strip(" ,")
    if len(value) < 5 or not re.search(r"\d", value):
        return None
    return value


ADDRESS_RULES = [
    _rule("address_is", r"(?i:\baddress\s+is)\s+([^.;!?]*\d[^.;!?]*)", _clean_address),
    _rule(
        "street",
        rf"\b(\d{{1,6}}[ \t]+(?:[A-Z0-9][A-Za-z0-9.']*[ \t]+){{0,4}}?(?i:{_SUFFIX})\b\.?)",
        _clean_address,
    ),
]


def _format_phone(match: re.Match) -> str:
    digits = re.sub(r"\D", "", match.group(1))
    return f"{digits[0:3]}-{digits[3:6]}-{digits[6:10]}"


PHONE_RULES = [
    _rule("phone", r"(?<!\d)(\(?\d{3}\)?[\s.-]?\d{3}[\s.-]?\d{4})(?!\d)", _format_phone),
]

EMAIL_RULES = [
    _rule("email", r"([\w.+-]+@[\w-]+(?:\.[\w-]+)+)", lambda m: m.group(1).lower()),
]

# --- Special notes ---


def _clean_note(match: re.Match) -> str | None:
    note = match.group(1).strip(" ,:")
    if len(note) < 3:
        return None
    return note[0].upper() + note[1:]


NOTE_RULES = [
    _rule(
        "note",
        r"(?i:\b(?:make a note|note that|special notes?|heads up|keep in mind))(?i:\s+that)?[\s:,]+([^.;!?]+)",
        _clean_note,
    ),
]


def extract_notes(text: str) -> str | None:
    """Every noted remark in spoken order, joined with "; "."""
    notes = []
    for _, note in find_all(NOTE_RULES, text):
        if note not in notes:
            notes.append(note)
    return "; ".join(notes) or None


# --- Project type ---

PROJECT_TYPE_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("both", lambda t: match_any_keyword(t, BOTH_KEYWORDS) or (
        match_any_keyword(t, INTERIOR_KEYWORDS) and match_any_keyword(t, EXTERIOR_KEYWORDS))),
    ("exterior", lambda t: match_any_keyword(t, EXTERIOR_KEYWORDS)),
    ("interior", lambda t: match_any_keyword(t, INTERIOR_KEYWORDS)),
]


def extract_project_type(text: str) -> str | None:
    for value, test in PROJECT_TYPE_RULES:
        if test(text):
            return value
    return None


# --- Areas ---

_AREA_RE = re.compile(rf"\b({keyword_alternation(AREA_KEYWORDS | set(AREA_PLURALS))})\b")
_ROOM_COUNT_RE = re.compile(rf"\b({NUMBER})\s+({keyword_alternation(ROOM_COUNT_NOUNS)})\b")
_SQFT_RE = re.compile(
    rf"\b({NUMBER})\s*(?:square\s*(?:feet|foot|ft)|sq\.?\s*(?:ft|feet|foot)\.?|sqft)(?!\w)"
)


def is_square_footage(area: str) -> bool:
    return area.startswith("~") and area.endswith("sq ft")


def extract_areas(text: str) -> list[str]:
    # Counted phrases ("three bedrooms") are not named areas
    masked = _ROOM_COUNT_RE.sub(lambda m: " " * len(m.group(0)), text)

    areas: list[str] = []
    for match in _AREA_RE.finditer(masked):
        name = AREA_PLURALS.get(match.group(1), match.group(1))
        if name not in areas:
            areas.append(name)

    if not areas:
        counts = [
            (to_number(m.group(1)), m.group(2))
            for m in _ROOM_COUNT_RE.finditer(text)
        ]
        counts = [(n, noun) for n, noun in counts if n and 0 < n <= 50]
        if counts:
            n, noun = counts[-1]
            areas.append(f"{as_whole(n)} {noun}")

    sqft = [to_number(m.group(1)) for m in _SQFT_RE.finditer(text)]
    sqft = [n for n in sqft if n and n >= 10]
    if sqft:
        areas.append(f"~{int(sqft[-1]):,} sq ft")
    return areas


# --- Crew, duration, rate ---

_CREW = keyword_alternation(CREW_NOUNS)
_HELPER = r"(?:a|my|one)\s+(?:helper|partner|guy|buddy|son|brother|apprentice)"

CREW_RULES = [
    _rule("me_and_helper", rf"\bme\s+and\s+{_HELPER}\b", _constant(2)),
    _rule("me_and_n", rf"\bme\s+and\s+({NUMBER})(?:\s+(?:other\s+)?(?:{_CREW}))?\b", _number_in(2, 20, offset=1)),
    _rule("solo", rf"\b(?:{keyword_alternation(SOLO_PHRASES)})\b(?!\s+and\b)", _constant(1)),
    _rule("crew_of", rf"\bcrew\s+of\s+({NUMBER})\b", _number_in(1, 20)),
    _rule("n_man_crew", rf"\b({NUMBER})[\s-]+man\s+crew\b", _number_in(1, 20)),
    _rule("n_people", rf"\b({NUMBER})\s+(?:{_CREW})\b", _number_in(1, 20)),
]

DAYS_RULES = [
    _rule("n_and_half", rf"\b({NUMBER})\s+and\s+a\s+half\s+days?\b", _number_in(0.5, 60, offset=0.5)),
    _rule("day_and_half", r"\b(?:a\s+)?day\s+and\s+a\s+half\b", _constant(1.5)),
    _rule("half_day", r"\bhalf\s+(?:a\s+)?day\b", _constant(0.5)),
    _rule("n_days", rf"\b({NUMBER})[\s-]+days?\b", _number_in(0.5, 60)),
    _rule("n_weeks", rf"\b({NUMBER})\s+weeks?\b", lambda m: _weeks(m.group(1))),
    _rule("a_week", r"\b(?:a|one)\s+week\b", _constant(5)),
]


def _weeks(token: str):
    n = to_number(token)
    if n is None or not 0 < n <= 12:
        return None
    return as_whole(n * 5)


HOURS_PER_DAY_RULES = [
    _rule("per_day", rf"\b({NUMBER})\s+hours?\s+(?:per|a|each|every)\s+day\b", _number_in(1, 16)),
    _rule("hour_days", rf"\b({NUMBER})[\s-]+hour\s+days?\b", _number_in(1, 16)),
]

MIN_HOURLY_RATE = 20
MAX_HOURLY_RATE = 200

HOURLY_RATE_RULES = [
    _rule("dollar_per_hour", rf"\$\s?({NUMBER})\s*(?:an|per|a|/)\s*(?:hour|hr)\b",
          _number_in(MIN_HOURLY_RATE, MAX_HOURLY_RATE)),
    _rule("dollars_an_hour", rf"\b({NUMBER})\s+(?:dollars|bucks)\s+(?:an|per|a)\s+(?:hour|hr)\b",
          _number_in(MIN_HOURLY_RATE, MAX_HOURLY_RATE)),
    _rule("rate_is", rf"\brate\s+(?:is|of|at|will be)\s+\$?({NUMBER})\b",
          _number_in(MIN_HOURLY_RATE, MAX_HOURLY_RATE)),
    _rule("charging", rf"\bcharg(?:e|ing)\s+\$?({NUMBER})(?:\s+(?:dollars|bucks))?\s+(?:an|per|a)\s+hour\b",
          _number_in(MIN_HOURLY_RATE, MAX_HOURLY_RATE)),
    _rule("n_an_hour", rf"\b({NUMBER})\s+(?:an|per)\s+hour\b",
          _number_in(MIN_HOURLY_RATE, MAX_HOURLY_RATE)),
]

# --- Paint items ---

_PRODUCT = keyword_alternation(PRODUCT_PRICES)
_GALLONS = r"gal(?:lon)?s?\b\.?"
_AREA_TAIL = r"(?:\s+(?:for|on|in)\s+(?:all\s+)?(?:the\s+)?(?P<area>[a-z]+(?:\s+[a-z]+)?))?"
_AREA_STOPWORDS = {"the", "a", "it", "that", "this", "and", "now", "each", "all"}
_COLOR_WORDS = {name.split()[0] for name in COLOR_CODES}


def _paint_area(raw: str | None) -> str:
    if not raw:
        return "general"
    words = raw.split()
    if len(words) > 1 and " ".join(words[:2]) in AREA_KEYWORDS:
        return " ".join(words[:2])
    if words[0] in _AREA_STOPWORDS:
        return "general"
    return AREA_PLURALS.get(words[0], words[0])


def _paint_item(match: re.Match) -> PaintItem | None:
    gallons = to_number(match.group("gallons"))
    if gallons is None or not MIN_GALLONS <= gallons <= MAX_GALLONS:
        return None
    product = match.group("product")
    if product in _AREA_STOPWORDS:
        return None
    if product in _COLOR_WORDS:
        product = "paint"
    price = PRODUCT_PRICES.get(product, DEFAULT_PRICE_PER_GALLON)
    finish = CLASSIC_FAMILY_FINISH if "classic" in product else DEFAULT_FINISH
    return PaintItem(
        area=_paint_area(match.group("area")),
        product=product,
        gallons=as_whole(gallons),
        price_per_gallon=price,
        finish=finish,
    )


PAINT_RULES = [
    _rule(
        "gallons_of_product",
        rf"\b(?P<gallons>{NUMBER})\s+{_GALLONS}\s+of\s+(?:the\s+)?"
        rf"(?P<product>{_PRODUCT}|{keyword_alternation(GENERIC_PAINT_WORDS)}|[a-z][a-z0-9\-]*){_AREA_TAIL}",
        _paint_item,
    ),
    _rule(
        "product_gallons",
        rf"\b(?P<product>{_PRODUCT}),?\s+(?P<gallons>{NUMBER})\s+{_GALLONS}{_AREA_TAIL}",
        _paint_item,
    ),
]

# --- Colors ---

_COLOR_NAME_RE = re.compile(rf"\b({keyword_alternation(COLOR_CODES)})\b")
_COLOR_CODE_RE = re.compile(r"\bsw\s*-?\s*(\d{4})\b")
_CLAUSE_BREAK_RE = re.compile(r"[,.;!?]|\band\b|\bbut\b|\bthen\b")


def _color_area(text: str, start: int, end: int) -> str:
    """Nearest area qualifier in the same clause, looking left of the mention first."""
    before = text[:start]
    breaks = list(_CLAUSE_BREAK_RE.finditer(before))
    if breaks:
        before = before[breaks[-1].end():]
    after = text[end:]
    first_break = _CLAUSE_BREAK_RE.search(after)
    if first_break:
        after = after[:first_break.start()]

    for word in reversed(re.findall(r"[a-z]+", before)[-3:]):
        if word in COLOR_AREA_QUALIFIERS:
            return word
    for word in re.findall(r"[a-z]+", after)[:3]:
        if word in COLOR_AREA_QUALIFIERS:
            return word
    return "general"


def extract_colors(text: str) -> list[ColorAssignment]:
    mentions = []
    for match in _COLOR_NAME_RE.finditer(text):
        name = match.group(1)
        mentions.append((match.start(), ColorAssignment(
            area=_color_area(text, match.start(), match.end()),
            color=name.title(),
            sw_code=COLOR_CODES[name],
        )))
    for match in _COLOR_CODE_RE.finditer(text):
        code = f"SW {match.group(1)}"
        mentions.append((match.start(), ColorAssignment(
            area=_color_area(text, match.start(), match.end()),
            color=code,
            sw_code=code,
        )))
    mentions.sort(key=lambda m: m[0])
    return merge_colors([], [c for _, c in mentions])


# --- Scope of work ---

_PREP_RE = re.compile(rf"\b({keyword_alternation(PREP_KEYWORDS)})\b")


def collapse_prep_synonyms(tasks: list[str]) -> list[str]:
    present = set(tasks)
    return [t for t in tasks if PREP_SYNONYMS.get(t) not in present]


def extract_scope_of_work(text: str) -> list[str]:
    tasks: list[str] = []
    for match in _PREP_RE.finditer(text):
        if match.group(1) not in tasks:
            tasks.append(match.group(1))
    return collapse_prep_synonyms(tasks)


# --- Add-ons ---

ADD_ON_PATTERNS = {
    "Pressure washing": r"(?:pressure|power)[\s-]?wash(?:ing|ed)?",
    "Carpentry": r"carpentry|wood\s+rot(?:\s+repair)?|rotten\s+wood",
    "Wallpaper removal": r"wallpaper\s+removal|remov(?:e|ing)\s+(?:the\s+)?wallpaper|strip(?:ping)?\s+(?:the\s+)?wallpaper",
}

_ADD_ON_RES = {
    description: re.compile(
        rf"(?:\b(?P<pre>{NUMBER})\s+hours?\s+(?:of\s+)?)?\b(?:{pattern})\b"
        rf"(?:\s+(?:for\s+|about\s+|takes\s+|is\s+)?(?:about\s+|maybe\s+)?(?P<post>{NUMBER})\s+hours?\b)?"
    )
    for description, pattern in ADD_ON_PATTERNS.items()
}


def extract_add_ons(text: str) -> list[AddOn]:
    """Billable add-ons with any spoken hour count.

    The rate stays unset so pricing bills the draft's current hourly rate.
    """
    found = []
    for description, pattern in _ADD_ON_RES.items():
        matches = list(pattern.finditer(text))
        if not matches:
            continue
        hours = None
        for match in matches:
            value = to_number(match.group("pre") or match.group("post") or "")
            if value is not None and 0 < value <= 200:
                hours = as_whole(value)
        found.append((matches[0].start(), AddOn(description=description, hours=hours)))
    found.sort(key=lambda f: f[0])
    return [a for _, a in found]


# --- Merging against collected values ---

def merge_areas(existing: list[str], found: list[str]) -> list[str]:
    merged = list(existing)
    for area in found:
        if area in merged:
            continue
        if is_square_footage(area):
            merged = [a for a in merged if not is_square_footage(a)]
        merged.append(area)
    return merged


def merge_paint_items(existing: list[PaintItem], found: list[PaintItem]) -> list[PaintItem]:
    merged = list(existing)
    keys = {item.key() for item in merged}
    for item in found:
        if item.key() not in keys:
            merged.append(item)
            keys.add(item.key())
    return merged


def merge_colors(existing: list[ColorAssignment], found: list[ColorAssignment]) -> list[ColorAssignment]:
    merged = list(existing)
    for color in found:
        duplicate = any(
            (color.sw_code and c.sw_code == color.sw_code) or c.color.lower() == color.color.lower()
            for c in merged
        )
        if not duplicate:
            merged.append(color)
    return merged


def merge_scope(existing: list[str], found: list[str]) -> list[str]:
    merged = list(existing)
    for task in found:
        if task not in merged:
            merged.append(task)
    return collapse_prep_synonyms(merged)


def merge_add_ons(existing: list[AddOn], found: list[AddOn]) -> list[AddOn]:
    merged = list(existing)
    for add_on in found:
        index = next(
            (i for i, a in enumerate(merged) if a.description.lower() == add_on.description.lower()),
            None,
        )
        if index is None:
            merged.append(add_on)
            continue
        current = merged[index]
        hours = add_on.hours if add_on.hours is not None else current.hours
        rate = current.hourly_rate if current.hourly_rate is not None else add_on.hourly_rate
        if (hours, rate) != (current.hours, current.hourly_rate):
            merged[index] = AddOn(description=current.description, hours=hours, hourly_rate=rate)
    return merged


# --- Entry points ---

SCALAR_FIELDS = (
    "customer_name", "property_address", "phone", "email", "project_type",
    "number_of_painters", "estimated_days", "hours_per_day", "hourly_rate", "special_notes",
)

LIST_MERGERS = {
    "areas": merge_areas,
    "paint_items": merge_paint_items,
    "colors": merge_colors,
    "scope_of_work": merge_scope,
    "add_ons": merge_add_ons,
}


def scan_transcript(conversation: list) -> dict:
    """Every field the transcript carries positive evidence for.

    Fields without evidence are absent from the result, never None.
    """
    original = joined_text(conversation)
    if not original:
        return {}
    text = original.lower()
    customer_original = joined_text(conversation, role="user")
    customer_text = customer_original.lower()

    found: dict = {}

    name = resolve_name(customer_original) if customer_original else None
    if name is None:
        name = resolve_name(original)
    if name:
        found["customer_name"] = name

    for key, rules, source in (
        ("property_address", ADDRESS_RULES, original),
        ("phone", PHONE_RULES, original),
        ("email", EMAIL_RULES, original),
        ("number_of_painters", CREW_RULES, text),
        ("estimated_days", DAYS_RULES, text),
        ("hours_per_day", HOURS_PER_DAY_RULES, text),
        ("hourly_rate", HOURLY_RATE_RULES, text),
    ):
        value = resolve(rules, source)
        if value is not None:
            found[key] = value

    # Agent questions ("interior or exterior?") would read as "both"
    project_type = extract_project_type(customer_text or text)
    if project_type:
        found["project_type"] = project_type

    notes = extract_notes(customer_original)
    if notes:
        found["special_notes"] = notes

    areas = extract_areas(text)
    if areas:
        found["areas"] = areas

    paint_items = merge_paint_items([], [value for _, value in find_all(PAINT_RULES, text)])
    if paint_items:
        found["paint_items"] = paint_items

    colors = extract_colors(text)
    if colors:
        found["colors"] = colors

    scope = extract_scope_of_work(text)
    if scope:
        found["scope_of_work"] = scope

    add_ons = extract_add_ons(text)
    if add_ons:
        found["add_ons"] = add_ons

    return found


def diff_transcript(conversation: list, draft: Draft) -> tuple[dict, dict]:
    """Partial update for the draft plus the scalar evidence it was decided on.

    A scalar is only written when the transcript's winning value is new
    evidence: it differs from the draft and from ``draft.extracted``, the
    value extraction applied last time. A field later changed by a tool
    call or a direct update is therefore not reverted by an old mention.
    """
    found = scan_transcript(conversation)
    evidence = {key: found[key] for key in SCALAR_FIELDS if key in found}
    update = {}

    for key, value in evidence.items():
        if value == getattr(draft, key) or value == draft.extracted.get(key):
            continue
        update[key] = value

    for key, merge in LIST_MERGERS.items():
        if key not in found:
            continue
        current = getattr(draft, key)
        merged = merge(current, found[key])
        if merged != current:
            update[key] = merged

    if update:
        logger.debug("extraction update for %s: %s", draft.id, sorted(update))
    return update, evidence


def extract_fields(conversation: list, draft: Draft) -> dict:
    """Partial update for the draft: only fields whose value would change.

    Lists are merged with what the draft already holds (deduplicated), so
    the update never drops collected items. Running this again after the
    update has been applied returns an empty dict.
    """
    return diff_transcript(conversation, draft)[0]
