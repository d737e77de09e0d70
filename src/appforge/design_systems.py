"""Fixed design-system registry and the industry/intent selectors.

An app uses exactly one design system. Palettes are only ever selected from
this registry; they are never blended or synthesized.
"""

from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, List

from .surface_theme import surface_intent_for_design_system

DesignSystem = Dict[str, Any]

DEFAULT_DESIGN_SYSTEM_ID = "modern-saas"


def _palette(
    primary: str,
    secondary: str,
    accent: str,
    success: str,
    warning: str,
    error: str,
    info: str,
    background: str,
    surface: str,
    text: str,
    text_muted: str,
    border: str,
) -> dict:
    return {
        "primary": primary,
        "secondary": secondary,
        "accent": accent,
        "success": success,
        "warning": warning,
        "error": error,
        "info": info,
        "background": background,
        "surface": surface,
        "text": text,
        "textMuted": text_muted,
        "border": border,
    }


def _system(
    system_id: str,
    name: str,
    intent: str,
    suitable_for: list[str],
    not_suitable_for: list[str],
    light: dict,
    dark: dict,
    fonts: tuple[str, str, str],
    font_size: str,
    line_height: str,
    spacing: tuple[str, str, str],
    shadows: tuple[bool, str],
    animations: tuple[str, str],
    components: tuple[str, str, str, str],
) -> DesignSystem:
    return {
        "id": system_id,
        "name": name,
        "intent": intent,
        "suitableFor": suitable_for,
        "notSuitableFor": not_suitable_for,
        "colors": {"light": light, "dark": dark},
        "typography": {
            "fontFamily": fonts[0],
            "headingFamily": fonts[1],
            "monoFamily": fonts[2],
            "fontSize": font_size,
            "lineHeight": line_height,
        },
        "spacing": {"scale": spacing[0], "borderRadius": spacing[1], "cardPadding": spacing[2]},
        "shadows": {"enabled": shadows[0], "intensity": shadows[1]},
        "animations": {"enabled": True, "duration": animations[0], "easing": animations[1]},
        "componentPreferences": {
            "buttonStyle": components[0],
            "cardStyle": components[1],
            "inputStyle": components[2],
            "tableStyle": components[3],
        },
    }


_REGISTRY: Dict[str, DesignSystem] = {
    s["id"]: s
    for s in (
        _system(
            "trust-stability",
            "Trust & Stability",
            "Convey reliability, professionalism, and confidence",
            ["finance", "banking", "insurance", "real-estate", "property-management", "legal", "accounting", "consulting", "government"],
            ["fitness", "entertainment", "children", "creative"],
            _palette("#1e40af", "#1d4ed8", "#0891b2", "#059669", "#d97706", "#dc2626", "#0284c7", "#f8fafc", "#ffffff", "#1e293b", "#64748b", "#e2e8f0"),
            _palette("#60a5fa", "#3b82f6", "#22d3ee", "#34d399", "#fbbf24", "#f87171", "#38bdf8", "#0f172a", "#1e293b", "#f1f5f9", "#94a3b8", "#334155"),
            ('"IBM Plex Sans", -apple-system, BlinkMacSystemFont, sans-serif', '"IBM Plex Sans", sans-serif', '"IBM Plex Mono", monospace'),
            "base",
            "normal",
            ("normal", "md", "md"),
            (True, "subtle"),
            ("normal", "ease-in-out"),
            ("solid", "elevated", "outlined", "striped"),
        ),
        _system(
            "calm-care",
            "Calm & Care",
            "Create a soothing, safe, and caring environment",
            ["medical", "healthcare", "therapy-clinic", "wellness", "home-health", "veterinary", "dental", "pharmacy", "senior-care", "mental-health"],
            ["nightlife", "entertainment", "sports", "construction"],
            _palette("#0d9488", "#14b8a6", "#0891b2", "#059669", "#d97706", "#dc2626", "#0284c7", "#f0fdfa", "#ffffff", "#134e4a", "#5f9ea0", "#99f6e4"),
            _palette("#2dd4bf", "#5eead4", "#22d3ee", "#34d399", "#fbbf24", "#f87171", "#38bdf8", "#042f2e", "#134e4a", "#f0fdfa", "#5eead4", "#115e59"),
            ('"Source Sans Pro", -apple-system, sans-serif', '"Source Sans Pro", sans-serif', '"Source Code Pro", monospace'),
            "base",
            "relaxed",
            ("relaxed", "lg", "lg"),
            (True, "subtle"),
            ("slow", "ease"),
            ("soft", "elevated", "outlined", "minimal"),
        ),
        _system(
            "operational-strength",
            "Operational Strength",
            "Project capability, durability, and reliability",
            ["contractor", "construction", "manufacturing", "logistics", "plumber", "electrician", "hvac", "roofing", "mechanic", "handyman", "landscaping", "cleaning"],
            ["luxury", "beauty", "children", "healthcare"],
            _palette("#1e293b", "#334155", "#f97316", "#22c55e", "#eab308", "#dc2626", "#0284c7", "#f8fafc", "#ffffff", "#0f172a", "#64748b", "#cbd5e1"),
            _palette("#e2e8f0", "#cbd5e1", "#fb923c", "#4ade80", "#facc15", "#f87171", "#38bdf8", "#020617", "#0f172a", "#f8fafc", "#94a3b8", "#1e293b"),
            ('"Plus Jakarta Sans", -apple-system, sans-serif', '"Plus Jakarta Sans", sans-serif', '"Fira Code", monospace'),
            "base",
            "tight",
            ("compact", "sm", "md"),
            (True, "medium"),
            ("fast", "ease-out"),
            ("solid", "outlined", "outlined", "bordered"),
        ),
        _system(
            "warm-craft",
            "Warm Craft & Hospitality",
            "Create warmth, comfort, and artisanal authenticity",
            ["restaurant", "bakery", "cafe", "hospitality", "hotel", "catering", "food-truck", "brewery", "winery", "artisan"],
            ["technology", "finance", "medical", "construction"],
            _palette("#b45309", "#d97706", "#059669", "#16a34a", "#ca8a04", "#dc2626", "#0369a1", "#fffbeb", "#ffffff", "#451a03", "#92400e", "#fde68a"),
            _palette("#fbbf24", "#f59e0b", "#34d399", "#4ade80", "#facc15", "#f87171", "#38bdf8", "#1c1917", "#292524", "#fef3c7", "#d6d3d1", "#44403c"),
            ('"Lato", -apple-system, sans-serif', '"Playfair Display", Georgia, serif', '"Source Code Pro", monospace'),
            "base",
            "relaxed",
            ("relaxed", "lg", "lg"),
            (True, "subtle"),
            ("normal", "ease"),
            ("solid", "elevated", "outlined", "minimal"),
        ),
        _system(
            "modern-saas",
            "Modern SaaS Clarity",
            "Project innovation, modernity, and digital sophistication",
            ["technology", "saas", "startup", "digital-agency", "software", "ecommerce", "marketplace", "platform"],
            ["healthcare", "legal", "traditional-craft"],
            _palette("#6366f1", "#8b5cf6", "#ec4899", "#10b981", "#f59e0b", "#ef4444", "#3b82f6", "#f8fafc", "#ffffff", "#0f172a", "#64748b", "#e2e8f0"),
            _palette("#818cf8", "#a78bfa", "#f472b6", "#34d399", "#fbbf24", "#f87171", "#60a5fa", "#0f172a", "#1e293b", "#f1f5f9", "#94a3b8", "#334155"),
            ('"Inter", -apple-system, BlinkMacSystemFont, sans-serif', '"Inter", sans-serif', '"JetBrains Mono", monospace'),
            "base",
            "normal",
            ("normal", "lg", "md"),
            (True, "subtle"),
            ("fast", "ease-out"),
            ("solid", "elevated", "outlined", "striped"),
        ),
        _system(
            "luxury-refinement",
            "Luxury & Refinement",
            "Convey exclusivity, sophistication, and premium quality",
            ["salon", "spa", "luxury-retail", "high-end-services", "interior-design", "jewelry", "fashion", "premium"],
            ["budget", "construction", "fitness", "children"],
            _palette("#57534e", "#78716c", "#a8a29e", "#65a30d", "#ca8a04", "#b91c1c", "#0369a1", "#fafaf9", "#ffffff", "#1c1917", "#78716c", "#e7e5e4"),
            _palette("#d6d3d1", "#a8a29e", "#78716c", "#84cc16", "#eab308", "#ef4444", "#0ea5e9", "#0c0a09", "#1c1917", "#fafaf9", "#a8a29e", "#292524"),
            ('"Cormorant Garamond", Georgia, serif', '"Playfair Display", serif', '"DM Mono", monospace'),
            "lg",
            "relaxed",
            ("relaxed", "none", "lg"),
            (False, "subtle"),
            ("slow", "ease"),
            ("outline", "outlined", "underlined", "minimal"),
        ),
        _system(
            "friendly-approachable",
            "Friendly & Approachable",
            "Create a welcoming, non-intimidating environment",
            ["tutor", "education", "school", "community", "non-profit", "childcare", "library", "youth-services"],
            ["finance", "legal", "construction", "luxury"],
            _palette("#7c3aed", "#8b5cf6", "#f472b6", "#10b981", "#f59e0b", "#f43f5e", "#06b6d4", "#faf5ff", "#ffffff", "#1e1b4b", "#6b7280", "#e9d5ff"),
            _palette("#a78bfa", "#c084fc", "#f9a8d4", "#34d399", "#fbbf24", "#fb7185", "#22d3ee", "#1e1b4b", "#312e81", "#f5f3ff", "#a5b4fc", "#4c1d95"),
            ('"Nunito", -apple-system, sans-serif', '"Nunito", sans-serif', '"Fira Code", monospace'),
            "base",
            "relaxed",
            ("relaxed", "xl", "lg"),
            (True, "subtle"),
            ("normal", "spring"),
            ("soft", "elevated", "filled", "minimal"),
        ),
        _system(
            "data-precision",
            "Data & Precision",
            "Convey technical precision and data reliability",
            ["analytics", "scientific", "research", "engineering", "laboratory", "data-services", "monitoring"],
            ["hospitality", "children", "creative", "luxury"],
            _palette("#0891b2", "#06b6d4", "#6366f1", "#10b981", "#f59e0b", "#ef4444", "#3b82f6", "#f0f9ff", "#ffffff", "#0c4a6e", "#64748b", "#bae6fd"),
            _palette("#22d3ee", "#67e8f9", "#818cf8", "#34d399", "#fbbf24", "#f87171", "#60a5fa", "#0c4a6e", "#0369a1", "#f0f9ff", "#7dd3fc", "#0284c7"),
            ('"Space Grotesk", -apple-system, sans-serif', '"Space Grotesk", sans-serif', '"Fira Code", monospace'),
            "sm",
            "normal",
            ("compact", "sm", "sm"),
            (True, "subtle"),
            ("fast", "linear"),
            ("solid", "outlined", "outlined", "bordered"),
        ),
        _system(
            "creative-expressive",
            "Creative & Expressive",
            "Celebrate creativity and artistic expression",
            ["photographer", "design-agency", "creative", "art-gallery", "music", "video-production", "graphic-design"],
            ["finance", "healthcare", "construction", "legal"],
            _palette("#7c3aed", "#9333ea", "#ec4899", "#10b981", "#f59e0b", "#ef4444", "#3b82f6", "#faf5ff", "#ffffff", "#2e1065", "#6b21a8", "#e9d5ff"),
            _palette("#a78bfa", "#c084fc", "#f472b6", "#34d399", "#fbbf24", "#f87171", "#60a5fa", "#2e1065", "#4c1d95", "#faf5ff", "#c4b5fd", "#6b21a8"),
            ('"DM Sans", -apple-system, sans-serif', '"Sora", sans-serif', '"JetBrains Mono", monospace'),
            "base",
            "normal",
            ("normal", "lg", "md"),
            (True, "medium"),
            ("normal", "ease-out"),
            ("solid", "elevated", "outlined", "minimal"),
        ),
        _system(
            "energetic-dynamic",
            "Energetic & Dynamic",
            "Project energy, motivation, and dynamic action",
            ["gym", "fitness-coach", "sports", "martial-arts", "adventure", "extreme-sports", "gaming"],
            ["healthcare", "legal", "finance", "senior-care", "meditation"],
            _palette("#dc2626", "#ea580c", "#f97316", "#22c55e", "#eab308", "#b91c1c", "#0284c7", "#fef2f2", "#ffffff", "#450a0a", "#7f1d1d", "#fecaca"),
            _palette("#f87171", "#fb923c", "#fdba74", "#4ade80", "#facc15", "#fca5a5", "#38bdf8", "#450a0a", "#7f1d1d", "#fef2f2", "#fca5a5", "#991b1b"),
            ('"Oswald", -apple-system, sans-serif', '"Oswald", sans-serif', '"Fira Code", monospace'),
            "lg",
            "tight",
            ("compact", "sm", "md"),
            (True, "strong"),
            ("fast", "spring"),
            ("solid", "elevated", "outlined", "striped"),
        ),
    )
}

INDUSTRY_DESIGN_SYSTEM_MAP: Dict[str, str] = {
    "real-estate": "trust-stability",
    "property-management": "trust-stability",
    "accounting": "trust-stability",
    "legal": "trust-stability",
    "insurance": "trust-stability",
    "finance": "trust-stability",
    "medical": "calm-care",
    "therapy-clinic": "calm-care",
    "home-health": "calm-care",
    "wellness": "calm-care",
    "veterinary": "calm-care",
    "dental": "calm-care",
    "contractor": "operational-strength",
    "plumber": "operational-strength",
    "electrician": "operational-strength",
    "mechanic": "operational-strength",
    "handyman": "operational-strength",
    "roofing": "operational-strength",
    "hvac": "operational-strength",
    "landscaping": "operational-strength",
    "cleaning": "operational-strength",
    "commercial-cleaning": "operational-strength",
    "bakery": "warm-craft",
    "restaurant": "warm-craft",
    "cafe": "warm-craft",
    "catering": "warm-craft",
    "hospitality": "warm-craft",
    "ecommerce": "modern-saas",
    "technology": "modern-saas",
    "saas": "modern-saas",
    "startup": "modern-saas",
    "general_business": "modern-saas",
    "salon": "luxury-refinement",
    "spa": "luxury-refinement",
    "tutor": "friendly-approachable",
    "school": "friendly-approachable",
    "education": "friendly-approachable",
    "home-organizer": "friendly-approachable",
    "photographer": "creative-expressive",
    "design-agency": "creative-expressive",
    "gym": "energetic-dynamic",
    "fitness-coach": "energetic-dynamic",
    "sports": "energetic-dynamic",
}

# Checked in order; first category with a matching keyword wins.
INTENT_KEYWORDS: List[tuple[str, frozenset[str]]] = [
    ("trust-stability", frozenset({"professional", "corporate", "trustworthy", "reliable", "secure"})),
    ("calm-care", frozenset({"caring", "health", "wellness", "medical", "calm", "healing"})),
    ("operational-strength", frozenset({"industrial", "construction", "rugged", "tough", "durable"})),
    ("warm-craft", frozenset({"warm", "cozy", "artisan", "craft", "homemade", "welcoming"})),
    ("modern-saas", frozenset({"modern", "tech", "digital", "innovative", "startup"})),
    ("luxury-refinement", frozenset({"luxury", "premium", "elegant", "sophisticated", "exclusive"})),
    ("friendly-approachable", frozenset({"friendly", "approachable", "educational", "community", "welcoming"})),
    ("data-precision", frozenset({"data", "analytics", "precision", "scientific", "technical"})),
    ("creative-expressive", frozenset({"creative", "artistic", "design", "expressive", "visual"})),
    ("energetic-dynamic", frozenset({"energetic", "fitness", "dynamic", "active", "sports"})),
]

_RADIUS_SIZES = {"none": "none", "sm": "small", "md": "medium", "lg": "large", "xl": "large", "full": "large"}


def get_design_system(system_id: str) -> DesignSystem | None:
    system = _REGISTRY.get(system_id)
    return copy.deepcopy(system) if system else None


def list_design_systems() -> list[DesignSystem]:
    return [copy.deepcopy(s) for s in _REGISTRY.values()]


def has_industry_mapping(industry_id: str) -> bool:
    return industry_id in INDUSTRY_DESIGN_SYSTEM_MAP


def for_industry(industry_id: str | None) -> DesignSystem:
    """Deterministic industry lookup; unknown industries get the default system."""
    system_id = INDUSTRY_DESIGN_SYSTEM_MAP.get(industry_id or "", DEFAULT_DESIGN_SYSTEM_ID)
    return copy.deepcopy(_REGISTRY[system_id])


def by_intent(keywords: Iterable[str] | None) -> str:
    lowered = {k.lower() for k in (keywords or []) if isinstance(k, str)}
    for system_id, words in INTENT_KEYWORDS:
        if lowered & words:
            return system_id
    return DEFAULT_DESIGN_SYSTEM_ID


def design_system_to_theme(system: DesignSystem, mode: str = "light") -> dict:
    """Project a design system into the concrete theme stored on a schema."""
    palette = system["colors"]["dark"] if mode == "dark" else system["colors"]["light"]
    typography = system["typography"]
    radius = _RADIUS_SIZES.get(system["spacing"].get("borderRadius"), "medium")
    return {
        "designSystem": system["id"],
        "primaryColor": palette["primary"],
        "secondaryColor": palette["secondary"],
        "accentColor": palette["accent"],
        "mode": mode,
        "borderRadius": radius,
        "fontFamily": typography["fontFamily"],
        "colors": dict(palette),
        "surfaceIntent": surface_intent_for_design_system(system["id"]),
        "typography": dict(typography),
        "spacing": dict(system["spacing"]),
        "shadows": dict(system["shadows"]),
        "animations": dict(system["animations"]),
        "componentPreferences": dict(system["componentPreferences"]),
        "customVars": {
            "--forge-primary": palette["primary"],
            "--forge-secondary": palette["secondary"],
            "--forge-accent": palette["accent"],
            "--forge-success": palette["success"],
            "--forge-warning": palette["warning"],
            "--forge-error": palette["error"],
            "--forge-info": palette["info"],
            "--forge-background": palette["background"],
            "--forge-surface": palette["surface"],
            "--forge-text": palette["text"],
            "--forge-text-muted": palette["textMuted"],
            "--forge-border": palette["border"],
            "--forge-font-family": typography["fontFamily"],
            "--forge-font-heading": typography["headingFamily"],
            "--forge-design-system": system["id"],
            "--forge-design-system-name": system["name"],
        },
    }


def validate_theme_coherence(theme: dict, system_id: str | None = None) -> dict:
    issues: list[str] = []
    system_id = system_id or theme.get("designSystem")
    system = _REGISTRY.get(system_id or "")
    if system:
        expected = system["colors"]["dark"] if theme.get("mode") == "dark" else system["colors"]["light"]
        primary = theme.get("primaryColor") or (theme.get("colors") or {}).get("primary")
        if primary != expected["primary"]:
            issues.append(f"Primary color {primary} does not match design system {system_id}")
    return {"valid": not issues, "issues": issues}
