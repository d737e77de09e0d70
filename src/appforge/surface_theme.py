"""Surface atmosphere presets (app/section/card backgrounds)."""

from __future__ import annotations

import colorsys
import copy
from typing import Dict

SURFACE_PRESETS: Dict[str, dict] = {
    "warm-artisanal": {
        "id": "warm-artisanal",
        "name": "Warm Artisanal",
        "appBackground": "#f5ebe0",
        "sectionBackground": "#fdf8f3",
        "cardBackground": "#ffffff",
        "contrastLevel": "medium",
        "warmthLevel": "warm",
        "appForeground": "#44403c",
        "dividerColor": "#e7e5e4",
    },
    "neutral-professional": {
        "id": "neutral-professional",
        "name": "Neutral Professional",
        "appBackground": "#f1f5f9",
        "sectionBackground": "#f8fafc",
        "cardBackground": "#ffffff",
        "contrastLevel": "medium",
        "warmthLevel": "neutral",
        "appForeground": "#334155",
        "dividerColor": "#e2e8f0",
    },
    "modern-dark": {
        "id": "modern-dark",
        "name": "Modern Dark",
        "appBackground": "#0f172a",
        "sectionBackground": "#1e293b",
        "cardBackground": "#334155",
        "contrastLevel": "high",
        "warmthLevel": "cool",
        "appForeground": "#f1f5f9",
        "dividerColor": "#475569",
    },
    "playful-light": {
        "id": "playful-light",
        "name": "Playful Light",
        "appBackground": "#faf5ff",
        "sectionBackground": "#f5f3ff",
        "cardBackground": "#ffffff",
        "contrastLevel": "low",
        "warmthLevel": "neutral",
        "appForeground": "#3b0764",
        "dividerColor": "#e9d5ff",
    },
}

DEFAULT_SURFACE_INTENT = "neutral-professional"

DESIGN_SYSTEM_SURFACE_MAP: Dict[str, str] = {
    "trust-stability": "neutral-professional",
    "calm-care": "neutral-professional",
    "operational-strength": "neutral-professional",
    "warm-craft": "warm-artisanal",
    "modern-saas": "neutral-professional",
    "luxury-refinement": "neutral-professional",
    "friendly-approachable": "playful-light",
    "data-precision": "modern-dark",
    "creative-expressive": "playful-light",
    "energetic-dynamic": "playful-light",
}


def surface_intent_for_design_system(system_id: str) -> str:
    return DESIGN_SYSTEM_SURFACE_MAP.get(system_id, DEFAULT_SURFACE_INTENT)


def get_surface_theme(intent: str) -> dict:
    return copy.deepcopy(SURFACE_PRESETS.get(intent) or SURFACE_PRESETS[DEFAULT_SURFACE_INTENT])


def hex_lightness(value: str) -> float:
    """HSL lightness of a hex color, in percent."""
    hex_value = value.lstrip("#")
    if len(hex_value) == 3:
        hex_value = "".join(c * 2 for c in hex_value)
    r, g, b = (int(hex_value[i : i + 2], 16) / 255 for i in (0, 2, 4))
    _, lightness, _ = colorsys.rgb_to_hls(r, g, b)
    return lightness * 100


def validate_white_budget(surface: dict) -> dict:
    warnings: list[str] = []
    app_bg = (surface.get("appBackground") or "").lower()
    section_bg = (surface.get("sectionBackground") or "").lower()
    card_bg = (surface.get("cardBackground") or "").lower()
    if app_bg in {"#ffffff", "#fff"}:
        warnings.append("App background is pure white; use a tinted background for depth.")
    if app_bg == section_bg == card_bg:
        warnings.append("All surface layers are identical.")
    app_l = hex_lightness(app_bg)
    section_l = hex_lightness(section_bg)
    card_l = hex_lightness(card_bg)
    if abs(app_l - section_l) < 2:
        warnings.append(
            f"Low contrast between app ({app_l:.1f}%) and section ({section_l:.1f}%) backgrounds."
        )
    if abs(section_l - card_l) < 1:
        warnings.append(
            f"Low contrast between section ({section_l:.1f}%) and card ({card_l:.1f}%) backgrounds."
        )
    return {"valid": not warnings, "warnings": warnings}
