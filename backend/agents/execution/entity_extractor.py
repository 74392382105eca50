# status: alpha

"""
Pattern-based follow-up step synthesis.

After a successful ``analyze_page_structure`` the loop can often fill the
obvious fields without another oracle call: pull a few entities out of the
user's message (place, room count, price ceiling, email, date, quoted
search text) and match them against the labels of the discovered inputs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from utils.logger import get_logger
from ..models.action_plan import ActionStep

logger = get_logger(__name__)

_LOCATION_RE = re.compile(
    r"\b(?:in|near|around)\s+([A-ZÅÄÖa-zåäöéü][\wåäöéü\-]+(?:\s+[A-ZÅÄÖ][\wåäöéü\-]+)*)"
)
_ROOMS_RE = re.compile(r"\b(\d+)\s*(?:-\s*)?(?:rooms?|bedrooms?|beds?|rum)\b", re.IGNORECASE)
_PRICE_RE = re.compile(
    r"\b(?:max(?:imum)?|under|below|up\s+to|at\s+most|less\s+than|cost(?:s|ing)?)\s*(?:of\s+)?"
    r"(\d[\d\s,.]*\d|\d)\s*(k|m|mn|million|milion|miljoner)?\s*(?:sek|kr|usd|eur|\$|€)?(?=\W|$)",
    re.IGNORECASE,
)
_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+")
_DATE_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_QUOTED_RE = re.compile(r"[\"“]([^\"”]{2,80})[\"”]")

_LOCATION_STOPWORDS = {"the", "a", "an", "my", "this", "that", "order", "total", "stock", "it"}

_MULTIPLIERS = {"k": 1_000, "m": 1_000_000, "mn": 1_000_000, "million": 1_000_000,
                "milion": 1_000_000, "miljoner": 1_000_000}

ENTITY_KEYWORDS: Dict[str, tuple] = {
    "location": ("location", "city", "area", "address", "where", "destination", "område", "ort", "search"),
    "rooms": ("room", "rum", "bedroom", "beds"),
    "price": ("price", "cost", "budget", "pris", "max"),
    "email": ("email", "e-mail", "mail"),
    "date": ("date", "check-in", "checkin", "from", "datum"),
    "query": ("search", "query", "keyword", "find", "sök"),
}

SUBMIT_KEYWORDS = ("search", "find", "show", "submit", "go", "sök", "visa")

_INPUT_TYPES = {"input", "select"}


@dataclass
class ExtractedEntity:
    kind: str
    value: str


def _normalize_amount(number: str, unit: Optional[str]) -> Optional[str]:
    digits = re.sub(r"[\s,]", "", number)
    if not digits:
        return None
    try:
        amount = float(digits)
    except ValueError:
        return None
    if unit:
        amount *= _MULTIPLIERS.get(unit.lower(), 1)
    return str(int(amount)) if amount == int(amount) else str(amount)


def extract_entities(message: str) -> List[ExtractedEntity]:
    """Pull the entities the synthesizer knows how to place from a user message."""
    entities: List[ExtractedEntity] = []
    if not message:
        return entities

    for match in _LOCATION_RE.finditer(message):
        candidate = match.group(1).strip()
        if candidate.lower() not in _LOCATION_STOPWORDS and not candidate.isdigit():
            entities.append(ExtractedEntity("location", candidate[:1].upper() + candidate[1:]))
            break

    rooms = _ROOMS_RE.search(message)
    if rooms:
        entities.append(ExtractedEntity("rooms", rooms.group(1)))

    price = _PRICE_RE.search(message)
    if price:
        amount = _normalize_amount(price.group(1), price.group(2))
        if amount:
            entities.append(ExtractedEntity("price", amount))

    email = _EMAIL_RE.search(message)
    if email:
        entities.append(ExtractedEntity("email", email.group(0)))

    date = _DATE_RE.search(message)
    if date:
        entities.append(ExtractedEntity("date", date.group(1)))

    quoted = _QUOTED_RE.search(message)
    if quoted:
        entities.append(ExtractedEntity("query", quoted.group(1).strip()))

    return entities


def element_haystack(element: Dict[str, Any]) -> str:
    parts = [
        element.get(key) for key in
        ("semantic", "label", "labelText", "placeholder", "ariaLabel", "name", "id", "text", "nearbyText")
    ]
    return " ".join(str(p) for p in parts if p).lower()


def _match_field(entity: ExtractedEntity, elements: List[Dict[str, Any]], used: set) -> Optional[str]:
    keywords = ENTITY_KEYWORDS.get(entity.kind, ())
    best: Optional[str] = None
    for element in elements:
        selector = element.get("selector")
        if not selector or selector in used or element.get("type") not in _INPUT_TYPES:
            continue
        haystack = element_haystack(element)
        if not any(keyword in haystack for keyword in keywords):
            continue
        # a price ceiling belongs in the "max" field when both min and max exist
        if entity.kind == "price" and "max" in haystack:
            return selector
        if best is None:
            best = selector
            if entity.kind != "price":
                break
    return best


def _match_submit(elements: List[Dict[str, Any]]) -> Optional[str]:
    for element in elements:
        if element.get("type") != "button" or not element.get("selector"):
            continue
        haystack = element_haystack(element)
        if any(re.search(rf"\b{re.escape(keyword)}\b", haystack) for keyword in SUBMIT_KEYWORDS):
            return element["selector"]
    return None


def synthesize_follow_up_steps(user_message: str, page_elements: Optional[List[Dict[str, Any]]],
                               tab_id: Optional[str] = None) -> List[ActionStep]:
    """
    Build fill_form/click_element steps for entities that match discovered
    elements. Returned steps are numbered 0; the caller renumbers them when
    splicing them into the plan.
    """
    if not page_elements:
        return []

    entities = extract_entities(user_message)
    if not entities:
        return []

    used: set = set()
    fields: Dict[str, str] = {}
    matched_kinds: List[str] = []
    for entity in entities:
        selector = _match_field(entity, page_elements, used)
        if selector:
            fields[selector] = entity.value
            matched_kinds.append(entity.kind)
            used.add(selector)

    if not fields:
        return []

    extra = {"tabId": tab_id} if tab_id else {}
    steps = [ActionStep(
        step_number=0,
        tool="fill_form",
        parameters={"fields": fields, **extra},
        reasoning=f"Fill in {', '.join(matched_kinds)} from the request",
    )]

    submit = _match_submit(page_elements)
    if submit:
        steps.append(ActionStep(
            step_number=0,
            tool="click_element",
            parameters={"selector": submit, **extra},
            reasoning="Submit the filled form to see the results",
        ))

    logger.info(f"[SYNTHESIS] {len(fields)} field(s) matched, {len(steps)} step(s) synthesized")
    return steps
