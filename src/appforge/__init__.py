"""AppForge pure helpers: design systems, surfaces, dashboard intent, naming."""

from .dashboard_intent import filter_by_time_scope, sort_sections, validate_dashboard_intent
from .design_systems import by_intent, design_system_to_theme, for_industry, get_design_system
from .naming import kebab_case, pluralize, title_case

__all__ = [
    "by_intent",
    "design_system_to_theme",
    "filter_by_time_scope",
    "for_industry",
    "get_design_system",
    "kebab_case",
    "pluralize",
    "sort_sections",
    "title_case",
    "validate_dashboard_intent",
]
