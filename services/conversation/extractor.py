"""
=====================================================
Craftsman Phone Assistant - Appointment Info Extractor
=====================================================
Deterministic pattern rules that pull booking details out of a caller
utterance. German and English phrasing are both recognised.

No external calls; the same utterance applied twice yields the same state.
"""

import re
from typing import Optional, Tuple

from .slot_state import SlotState


# =====================================================
# NAME
# =====================================================
# Trigger phrase is case-insensitive, the name itself must be capitalized
_NAME_WORD = r"[A-ZÄÖÜ][a-zäöüß]+"
NAME_PATTERN = re.compile(
    r"\b(?i:mein\s+name\s+ist|ich\s+hei(?:ß|ss)e|ich\s+bin|my\s+name\s+is|i\s+am|i'm|this\s+is)"
    rf"\s+({_NAME_WORD}(?:[ \t]+{_NAME_WORD})?)"
)

# Capitalized words after "ich bin" / "this is" that are not names
NOT_A_NAME = frozenset((
    "montag", "dienstag", "mittwoch", "donnerstag", "freitag", "samstag", "sonntag",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "heute", "morgen", "übermorgen", "today", "tomorrow",
    "mieter", "mieterin", "vermieter", "vermieterin", "eigentümer", "eigentümerin",
    "besitzer", "hausmeister", "kunde", "kundin", "nachbar", "nachbarin",
    "heizung", "sanitär", "elektrik", "notfall", "reparatur", "wartung", "installation",
    "tenant", "landlord", "owner", "customer", "neighbour", "neighbor",
))

# =====================================================
# PHONE NUMBER
# =====================================================
PHONE_PATTERN = re.compile(r"(?<![\d+])(?:\+\d{1,3}|0)[ \t]?\d{2,5}(?:[ \t/-]?\d{2,8}){1,3}(?!\d)")
MIN_PHONE_DIGITS = 6

# =====================================================
# SERVICE TYPE
# =====================================================
# Ordered: trades first, generic categories after. First hit wins.
SERVICE_KEYWORDS = (
    ("heizung", "Heizung"),
    ("heating", "Heating"),
    ("heater", "Heating"),
    ("sanitär", "Sanitär"),
    ("plumbing", "Plumbing"),
    ("elektrik", "Elektrik"),
    ("electrical", "Electrical"),
    ("reparatur", "Reparatur"),
    ("repair", "Repair"),
    ("installation", "Installation"),
    ("wartung", "Wartung"),
    ("maintenance", "Maintenance"),
    ("notfall", "Notfall"),
    ("emergency", "Emergency"),
)

# =====================================================
# URGENCY
# =====================================================
# Whole words only ("eilt" must not match "mitteilte"); urgent forms may inflect
URGENT_PATTERN = re.compile(r"\b(?:notfall|dringend|emergency|urgent)", re.IGNORECASE)
HIGH_PATTERN = re.compile(r"\b(?:eilt|rushed)\b", re.IGNORECASE)

# =====================================================
# ADDRESS
# =====================================================
_CAP_WORD = r"[A-ZÄÖÜ][a-zäöüß]*"
_HOUSE_NUMBER = r"[ \t]+\d{1,4}[a-z]?\b"
ADDRESS_PATTERNS = (
    # Compound street name: "Hauptstraße 12", "Lindenweg 3a"
    re.compile(
        r"\b([A-ZÄÖÜ][a-zäöüß]*?(?:straße|strasse|str\.|weg|allee|platz|gasse|ring|damm)"
        + _HOUSE_NUMBER + r")"
    ),
    # Separate suffix word: "Berliner Straße 5", "Main Street 4"
    re.compile(
        rf"\b((?:{_CAP_WORD}[ \t-]){{1,2}}(?:Straße|Strasse|Str\.|Weg|Allee|Platz|Gasse|Ring|Street|Road|Avenue|Lane|Drive)"
        + _HOUSE_NUMBER + r")"
    ),
    # Number first: "12 Main Street"
    re.compile(r"\b(\d{1,5}[ \t]+(?:[A-Z][a-z]+[ \t]+){1,3}(?:Street|Road|Avenue|Lane|Drive|Way))\b"),
)

# =====================================================
# DATE / TIME
# =====================================================
DATE_PATTERN = re.compile(
    r"\b(übermorgen|heute|(?<!guten\s)morgen|montag|dienstag|mittwoch|donnerstag|freitag|samstag"
    r"|today|tomorrow|monday|tuesday|wednesday|thursday|friday|saturday)\b",
    re.IGNORECASE
)

TIME_PATTERN = re.compile(
    r"\b(?:um|gegen|ab|at|around)\s+(\d{1,2})(?:[:.](\d{2}))?\s*(uhr|a\.m\.|p\.m\.|am|pm)?",
    re.IGNORECASE
)

MAX_DESCRIPTION_LENGTH = 500


def extract_appointment_info(transcript: str, current_state: Optional[SlotState]) -> SlotState:
    """
    Extract booking details from one caller utterance

    Matching fields overwrite the current value; fields without a match are
    left untouched. Malformed input returns the current state unchanged.

    Args:
        transcript: Transcribed caller speech (may be empty or noisy)
        current_state: Slot state collected so far

    Returns:
        Updated SlotState (the input object is not modified)
    """
    state = current_state.copy() if current_state is not None else SlotState()
    if not isinstance(transcript, str) or not transcript.strip():
        return state

    text = transcript.strip()
    lowered = text.lower()
    found = SlotState()

    found.customer_name = _extract_name(text)

    found.phone_number = _extract_phone(text)

    for keyword, category in SERVICE_KEYWORDS:
        if keyword in lowered:
            found.service_type = category
            if state.description is None:
                found.description = text[:MAX_DESCRIPTION_LENGTH]
            break

    if URGENT_PATTERN.search(text):
        found.urgency = "urgent"
    elif HIGH_PATTERN.search(text):
        found.urgency = "high"

    found.address = _extract_address(text)

    date_match = DATE_PATTERN.search(text)
    if date_match:
        found.preferred_date = date_match.group(1).lower()

    found.preferred_time = _extract_time(text)

    return state.merge(found)


def _extract_name(text: str) -> Optional[str]:
    for match in NAME_PATTERN.finditer(text):
        name = match.group(1)
        if name.split()[0].lower() not in NOT_A_NAME:
            return name
    return None


def _extract_phone(text: str) -> Optional[str]:
    for match in PHONE_PATTERN.finditer(text):
        candidate = match.group(0).strip()
        if sum(ch.isdigit() for ch in candidate) >= MIN_PHONE_DIGITS:
            return candidate
    return None


def _extract_address(text: str) -> Optional[str]:
    best: Optional[Tuple[int, str]] = None
    for pattern in ADDRESS_PATTERNS:
        match = pattern.search(text)
        if match and (best is None or match.start(1) < best[0]):
            best = (match.start(1), match.group(1).strip())
    return best[1] if best else None


def _extract_time(text: str) -> Optional[str]:
    for match in TIME_PATTERN.finditer(text):
        hour_str, minute_str, suffix = match.groups()
        # A bare number ("at 5") is too ambiguous to be a time
        if minute_str is None and suffix is None:
            continue

        hour = int(hour_str)
        minute = int(minute_str) if minute_str else 0
        suffix = (suffix or "").lower().replace(".", "")
        if suffix == "pm" and hour < 12:
            hour += 12
        elif suffix == "am" and hour == 12:
            hour = 0

        if hour < 24 and minute < 60:
            return f"{hour:02d}:{minute:02d}"
    return None
