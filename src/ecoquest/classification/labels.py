"""Map image-recognition labels to a waste classification."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from ecoquest.errors import CollaboratorUnavailable

UNKNOWN_ITEM = "unknown"
UNKNOWN_MATERIAL = "Unknown Material"

# Order matters: the first keyword found in a label wins.
WASTE_KEYWORDS: dict[str, tuple[bool, str, str, str]] = {
    "plastic bottle": (
        True, "Plastic",
        "Remove cap and label, rinse thoroughly, then place in blue recycling bin.",
        "Use a reusable water bottle to reduce plastic waste.",
    ),
    "bottle": (
        True, "Plastic",
        "Remove cap and label, rinse thoroughly, then place in blue recycling bin.",
        "Use a reusable water bottle to reduce plastic waste.",
    ),
    "can": (
        True, "Aluminum",
        "Rinse to remove any residue, then place in blue recycling bin.",
        "Opt for bulk purchases to reduce packaging waste.",
    ),
    "paper": (
        True, "Paper",
        "Ensure it's clean and free of food residue, then place in blue recycling bin.",
        "Switch to digital documents to reduce paper usage.",
    ),
    "food": (
        False, "Organic Waste",
        "Dispose in green compost bin if available, or in black landfill bin.",
        "Compost food scraps to reduce landfill waste.",
    ),
    "wrapper": (
        False, "Plastic Film",
        "Dispose in black landfill bin. Plastic films are not recyclable in most curbside programs.",
        "Use reusable containers to avoid plastic wrappers.",
    ),
    "plastic": (
        True, "Plastic",
        "Rinse and place in blue recycling bin if accepted locally.",
        "Reduce plastic use by choosing reusable alternatives.",
    ),
    "glass": (
        True, "Glass",
        "Rinse and place in blue recycling bin if accepted locally.",
        "Reuse glass containers to reduce waste.",
    ),
    "metal": (
        True, "Metal",
        "Rinse and place in blue recycling bin.",
        "Opt for products with minimal packaging.",
    ),
    "organic": (
        False, "Organic Waste",
        "Dispose in green compost bin if available, or in black landfill bin.",
        "Compost organic waste to reduce landfill impact.",
    ),
    "battery": (
        False, "Hazardous Waste",
        "Take to a hazardous waste facility or battery recycling drop-off.",
        "Use rechargeable batteries to reduce waste.",
    ),
    "electronics": (
        False, "Hazardous Waste",
        "Take to an e-waste recycling center.",
        "Donate working electronics to extend their lifespan.",
    ),
    "chemical": (
        False, "Hazardous Waste",
        "Dispose at a hazardous waste facility.",
        "Use eco-friendly alternatives to reduce chemical use.",
    ),
    "paint": (
        False, "Hazardous Waste",
        "Dispose at a hazardous waste facility.",
        "Buy only what you need to avoid excess paint.",
    ),
    "clothes": (
        False, "Donatable",
        "Donate to a thrift store or charity if in good condition.",
        "Buy second-hand clothes to reduce textile waste.",
    ),
    "furniture": (
        False, "Donatable",
        "Donate to a thrift store or charity if in good condition.",
        "Upcycle old furniture to give it a new life.",
    ),
    "book": (
        False, "Donatable",
        "Donate to a library, school, or charity.",
        "Share books with friends to reduce waste.",
    ),
}


class WasteClassification(BaseModel):
    item: str
    material: str
    is_recyclable: bool
    instructions: str
    tip: str

    @property
    def result(self) -> str:
        """Display string stored with the classification, e.g. ``Recyclable - Glass``."""
        prefix = "Recyclable" if self.is_recyclable else "Non-Recyclable"
        return f"{prefix} - {self.material}"


UNKNOWN_CLASSIFICATION = WasteClassification(
    item=UNKNOWN_ITEM,
    material=UNKNOWN_MATERIAL,
    is_recyclable=False,
    instructions="Dispose in black landfill bin.",
    tip="Consider researching the item's recyclability or reducing its use.",
)


def _match_keyword(label: str) -> str | None:
    for keyword in WASTE_KEYWORDS:
        if keyword in label:
            return keyword
    return None


def classify_labels(labels: list[str]) -> WasteClassification:
    """Classify by the first label that contains a known keyword (case-insensitive)."""
    for label in labels:
        keyword = _match_keyword(label.lower())
        if keyword is None:
            continue
        is_recyclable, material, instructions, tip = WASTE_KEYWORDS[keyword]
        return WasteClassification(
            item=keyword,
            material=material,
            is_recyclable=is_recyclable,
            instructions=instructions,
            tip=tip,
        )
    return UNKNOWN_CLASSIFICATION


def parse_label_payload(payload: Any) -> list[str]:
    """Accept ``["Bottle", ...]`` or ``[{"description": "Bottle"}, ...]``."""
    if not isinstance(payload, list):
        raise CollaboratorUnavailable(
            f"Label payload must be a list, got {type(payload).__name__}",
            transient=False,
            user_message="Image recognition returned an unexpected response.",
        )

    labels: list[str] = []
    for entry in payload:
        if isinstance(entry, str):
            labels.append(entry)
        elif isinstance(entry, dict) and isinstance(entry.get("description"), str):
            labels.append(entry["description"])
        else:
            raise CollaboratorUnavailable(
                f"Unrecognised label entry: {entry!r}",
                transient=False,
                user_message="Image recognition returned an unexpected response.",
            )
    return labels
