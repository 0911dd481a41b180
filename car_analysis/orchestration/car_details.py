"""
Heuristic car detail extraction from the user's own words.

Used to fill gaps the brief writer leaves (engine type) and to title a
report when the model returns no title.
"""
import re
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from langchain_core.messages import BaseMessage, HumanMessage

from car_analysis.core.messages import message_text

YEAR_PATTERN = re.compile(r"\b(?:19|20)\d{2}\b")

KNOWN_MAKES = [
    "bmw", "mercedes", "audi", "toyota", "honda", "ford", "volkswagen", "vw",
    "nissan", "hyundai", "kia", "mazda", "volvo", "skoda", "seat",
]
MAKE_ALIASES = {"vw": "volkswagen"}

ENGINE_TYPES = ["petrol", "diesel", "hybrid", "electric", "ev"]


def get_today_str() -> str:
    return datetime.now().strftime("%a %b %d, %Y")


def extract_car_details_from_messages(messages: Sequence[BaseMessage]) -> Dict[str, Any]:
    """
    Pull make, model, year and engine out of the user messages.

    Returns a dict with keys make/model/year/engine; missing values are None.
    The model is whatever token follows the make.
    """
    all_text = " ".join(message_text(m) for m in messages if isinstance(m, HumanMessage)).lower()

    year_match = YEAR_PATTERN.search(all_text)
    year: Optional[int] = int(year_match.group(0)) if year_match else None

    tokens = re.findall(r"[a-z0-9][a-z0-9\-]*", all_text)

    make: Optional[str] = None
    make_index = -1
    for brand in KNOWN_MAKES:
        if brand in tokens:
            make = MAKE_ALIASES.get(brand, brand)
            make_index = tokens.index(brand)
            break

    model: Optional[str] = None
    if make_index != -1 and make_index + 1 < len(tokens):
        candidate = tokens[make_index + 1]
        if not YEAR_PATTERN.fullmatch(candidate):
            model = candidate

    engine = next((e for e in ENGINE_TYPES if e in tokens), None)

    return {"make": make, "model": model, "year": year, "engine": engine}


def generate_analysis_title(make: Optional[str] = None, model: Optional[str] = None, year: Optional[int] = None) -> str:
    if make and model and year:
        return f"{year} {make.capitalize()} {model.capitalize()} - Comprehensive Analysis"
    if make and model:
        return f"{make.capitalize()} {model.capitalize()} - Car Analysis"
    if make:
        return f"{make.capitalize()} - Car Analysis"
    return "Car Analysis Report"
