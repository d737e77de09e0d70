from __future__ import annotations

import logging
from typing import Iterable

from appforge.design_systems import (
    DEFAULT_DESIGN_SYSTEM_ID,
    INTENT_KEYWORDS,
    by_intent,
    design_system_to_theme,
    for_industry,
    get_design_system,
    has_industry_mapping,
)

logger = logging.getLogger("appforge.theme_builder")

# Casual style words -> intent keyword understood by the design-system registry.
STYLE_KEYWORDS = {
    "clean": "modern",
    "simple": "modern",
    "minimal": "modern",
    "sleek": "modern",
    "bold": "energetic",
    "strong": "energetic",
    "colorful": "creative",
    "playful": "friendly",
    "fun": "friendly",
    "serious": "professional",
    "business": "professional",
    "fancy": "elegant",
    "luxurious": "luxury",
    "techy": "tech",
    "futuristic": "tech",
    "organic": "warm",
    "nature": "warm",
}


def _normalize(keywords: Iterable[str] | None) -> list[str]:
    out = []
    for word in keywords or []:
        if not isinstance(word, str) or not word.strip():
            continue
        lower = word.strip().lower()
        out.append(STYLE_KEYWORDS.get(lower, lower))
    return out


def matches_intent(keywords: Iterable[str] | None) -> bool:
    lowered = set(_normalize(keywords))
    return any(lowered & words for _, words in INTENT_KEYWORDS)


def build_theme(
    design_system_id: str | None = None,
    keyword: str | None = None,
    industry: str | None = None,
    adjectives: Iterable[str] | None = None,
    mode: str | None = None,
    preference: dict | None = None,
) -> dict:
    """Resolve exactly one design system and project it into a theme.

    Order: explicit id, style keyword, mapped industry, input adjectives, default.
    """
    preference = preference if isinstance(preference, dict) else {}
    mode = mode or preference.get("mode") or "light"
    if mode not in ("light", "dark"):
        mode = "light"
    system = get_design_system(design_system_id) if design_system_id else None
    source = "explicit"
    if system is None and keyword:
        system = get_design_system(by_intent(_normalize([keyword])))
        source = "keyword"
    if system is None and industry and has_industry_mapping(industry):
        system = for_industry(industry)
        source = "industry"
    if system is None and matches_intent(adjectives):
        system = get_design_system(by_intent(_normalize(adjectives)))
        source = "adjectives"
    if system is None:
        system = get_design_system(DEFAULT_DESIGN_SYSTEM_ID)
        source = "default"
    logger.debug("theme_resolved design_system=%s source=%s mode=%s", system["id"], source, mode)
    theme = design_system_to_theme(system, mode)
    overrides = {k: preference[k] for k in ("primaryColor", "accentColor") if isinstance(preference.get(k), str)}
    if overrides:
        theme.update(overrides)
        colors = dict(theme.get("colors") or {})
        if "primaryColor" in overrides:
            colors["primary"] = overrides["primaryColor"]
        if "accentColor" in overrides:
            colors["accent"] = overrides["accentColor"]
        theme["colors"] = colors
        theme.setdefault("customVars", {})["--forge-design-system-override"] = "true"
    return theme
