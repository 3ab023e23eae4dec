"""
Typed views of the JSON the model returns.

The model's output is free-form; everything is coerced here once, with
fallback defaults, so the rest of the pipeline works with plain attributes:

    ProposedItem   one line the model wants on the offer
    OfferDraft     the offer metadata + items + clarifying questions
    PriceEstimate  one estimated price from the cheap-model call
"""

import json
import math
import re
from dataclasses import dataclass, field

from app.core.exceptions import AIResponseParseError

ITEM_SOURCES = ("tenant", "global", "custom")

DEFAULT_TITLE = "Új ajánlat"
DEFAULT_LOCATION = "Helyszín nincs megadva"
DEFAULT_CUSTOMER_NAME = "Új ügyfél"
DEFAULT_ESTIMATED_TIME = "1-2 nap"


def strip_code_fences(content: str) -> str:
    """Remove a leading ```lang fence and a trailing ``` fence."""
    cleaned = (content or "").strip()
    cleaned = re.sub(r'^```\w*[\r\n]*', '', cleaned)
    cleaned = re.sub(r'[\r\n]*```$', '', cleaned)
    return cleaned.strip()


def parse_json_response(content: str) -> dict:
    """Parse a model completion as JSON. Raises AIResponseParseError."""
    cleaned = strip_code_fences(content)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AIResponseParseError("Failed to parse AI response") from exc
    if not isinstance(parsed, dict):
        raise AIResponseParseError("AI response is not a JSON object")
    return parsed


def _as_str(value, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip()


def _as_key(value) -> str:
    return "" if value is None else str(value)


def _as_number(value) -> float:
    """Finite numbers and numeric strings pass through; anything else is 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        number = value if isinstance(value, float) else float(str(value).strip().replace(",", "."))
    except (TypeError, ValueError):
        return 0
    return number if math.isfinite(number) else 0


@dataclass
class ProposedItem:
    task: str
    category: str = ""
    unit: str = ""
    quantity: float = 0
    source: str = "custom"
    custom_task: bool = False
    custom_reason: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ProposedItem":
        # task, category and source are catalog keys: taken verbatim, matched exactly
        source = data.get("source")
        if source not in ITEM_SOURCES:
            source = "custom"
        reason = data.get("customReason")
        return cls(
            task=_as_key(data.get("task")),
            category=_as_key(data.get("category")),
            unit=_as_str(data.get("unit")),
            quantity=_as_number(data.get("quantity")),
            source=source,
            custom_task=bool(data.get("customTask", False)),
            custom_reason=_as_str(reason) or None,
        )


@dataclass
class OfferDraft:
    title: str = DEFAULT_TITLE
    location: str = DEFAULT_LOCATION
    customer_name: str = DEFAULT_CUSTOMER_NAME
    estimated_time: str = DEFAULT_ESTIMATED_TIME
    offer_summary: str | None = None
    items: list = field(default_factory=list)
    questions: list = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_response(cls, parsed: dict) -> "OfferDraft":
        """Accept both {"offer": {...}} and a bare offer object."""
        data = parsed.get("offer") if isinstance(parsed.get("offer"), dict) else parsed

        estimated = data.get("estimatedTime")
        if isinstance(estimated, (int, float)) and not isinstance(estimated, bool):
            estimated_time = f"{estimated} nap"
        else:
            estimated_time = _as_str(estimated) or DEFAULT_ESTIMATED_TIME

        raw_items = data.get("items") if isinstance(data.get("items"), list) else []
        raw_questions = data.get("questions") if isinstance(data.get("questions"), list) else []

        return cls(
            title=_as_str(data.get("title")) or DEFAULT_TITLE,
            location=_as_str(data.get("location")) or DEFAULT_LOCATION,
            customer_name=_as_str(data.get("customerName")) or DEFAULT_CUSTOMER_NAME,
            estimated_time=estimated_time,
            offer_summary=_as_str(data.get("offerSummary")) or None,
            items=[ProposedItem.from_dict(i) for i in raw_items if isinstance(i, dict)],
            questions=[_as_str(q) for q in raw_questions if _as_str(q)],
            raw=data,
        )

    @property
    def categories(self) -> list[str]:
        """Distinct non-empty categories, in first-seen order."""
        seen = []
        for item in self.items:
            if item.category and item.category not in seen:
                seen.append(item.category)
        return seen


@dataclass
class PriceEstimate:
    task: str
    labor_cost: float = 0
    material_cost: float = 0

    @classmethod
    def from_dict(cls, data: dict) -> "PriceEstimate":
        return cls(
            task=_as_key(data.get("task")),
            labor_cost=_as_number(data.get("laborCost")),
            material_cost=_as_number(data.get("materialCost")),
        )


def parse_price_estimates(parsed: dict) -> list[PriceEstimate]:
    prices = parsed.get("prices")
    if not isinstance(prices, list):
        return []
    return [PriceEstimate.from_dict(p) for p in prices if isinstance(p, dict)]
