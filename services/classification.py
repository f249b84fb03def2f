"""Routing of free-text waste labels into closed categories.

Waste disclosures use an open vocabulary for metric labels, treatment
methods and hazard flags. The functions here map those strings onto the
``WasteFlow`` and ``HazardClass`` enums using case-insensitive substring
tests. Anything that matches no rule returns ``None`` so callers can count
or flag it instead of guessing.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

RECOVERY_KEYWORDS = ("recycl", "recover", "reuse", "compost")
DISPOSAL_KEYWORDS = ("disposal", "landfill", "incinerat")
# Checked before the recovery keywords, which would otherwise match "recovery".
NON_RECOVERING_PHRASES = ("without energy recovery", "without recovery")
NON_HAZARDOUS_MARKERS = ("non-hazardous", "non hazardous", "nonhazardous")


class WasteFlow(str, Enum):
    generated = "generated"
    recovered = "recovered"
    disposed = "disposed"


class HazardClass(str, Enum):
    hazardous = "hazardous"
    non_hazardous = "non_hazardous"


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def classify_flow(metric: Optional[str], treatment_method: Optional[str]) -> Optional[WasteFlow]:
    """Route a record into exactly one of generated/recovered/disposed."""
    label = (metric or "").lower()
    treatment = (treatment_method or "").lower()

    if "generated" in label:
        return WasteFlow.generated

    if treatment:
        if _contains_any(treatment, NON_RECOVERING_PHRASES):
            return WasteFlow.disposed
        if _contains_any(treatment, RECOVERY_KEYWORDS):
            return WasteFlow.recovered
        if _contains_any(treatment, DISPOSAL_KEYWORDS):
            return WasteFlow.disposed

    if "recover" in label:
        return WasteFlow.recovered
    if "dispos" in label:
        return WasteFlow.disposed
    if "total waste" in label:
        return WasteFlow.generated
    return None


def is_recycling(treatment_method: Optional[str]) -> bool:
    return "recycl" in (treatment_method or "").lower()


def classify_hazard(hazardousness: Optional[str], metric: Optional[str] = None) -> Optional[HazardClass]:
    """Route a record into hazardous or non-hazardous, preferring the explicit flag."""
    text = (hazardousness or "").lower() or (metric or "").lower()
    if not text:
        return None
    if _contains_any(text, NON_HAZARDOUS_MARKERS):
        return HazardClass.non_hazardous
    if "hazardous" in text:
        return HazardClass.hazardous
    return None


# Exact labels used by the headline charts, compared case-insensitively.
TOTAL_GENERATED_LABEL = "total waste generated"
TOTAL_RECOVERED_LABEL = "total waste recovered"
HAZARDOUS_GENERATED_LABEL = "total hazardous waste generated"
NON_HAZARDOUS_GENERATED_LABEL = "total non-hazardous waste generated"


def metric_label(metric: Optional[str]) -> str:
    return (metric or "").strip().lower()
