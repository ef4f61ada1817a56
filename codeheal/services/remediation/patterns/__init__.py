"""
Technology-specific lookup tables for the local fixers

This module can be extended with:
- vue_patterns.py - Vue.js-specific tables
- node_patterns.py - Node.js-specific tables

Each module exposes plain dict / frozenset constants; the fixers never
mutate them.
"""

from .react_patterns import (
    ImportInfo,
    COMMON_IMPORTS,
    PROP_TYPOS,
    SELF_CLOSING_TAGS,
    EXPORT_CORRECTIONS,
    ICON_LIBRARY,
    LUCIDE_FALLBACK_ICON,
    KNOWN_LUCIDE_ICONS,
)

__all__ = [
    'ImportInfo',
    'COMMON_IMPORTS',
    'PROP_TYPOS',
    'SELF_CLOSING_TAGS',
    'EXPORT_CORRECTIONS',
    'ICON_LIBRARY',
    'LUCIDE_FALLBACK_ICON',
    'KNOWN_LUCIDE_ICONS',
]
