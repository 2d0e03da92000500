"""
semantic_engine/keywords/taxonomy.py
Enum-keyed intent taxonomies.

A Taxonomy binds an intent Enum to its keyword lists, optional cultural
variants, and a Role map. Roles name the five signals the segmenter and the
evolution engine reason about (alignment, resistance, urgency, closure,
uncertainty), so those layers never hard-code a dimension name.

Extend a taxonomy by editing its keyword table; register a new one in
TAXONOMIES.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Type

logger = logging.getLogger(__name__)


class Role(Enum):
    ALIGNMENT   = 'alignment'
    RESISTANCE  = 'resistance'
    URGENCY     = 'urgency'
    CLOSURE     = 'closure'
    UNCERTAINTY = 'uncertainty'


@dataclass(frozen=True)
class Taxonomy:
    name:               str
    intents:            Type[Enum]
    keywords:           Mapping[Enum, Tuple[str, ...]]
    roles:              Mapping[Role, Enum]
    cultural_variants:  Mapping[str, Mapping[Enum, Tuple[str, ...]]] = field(default_factory=dict)

    @property
    def dimensions(self) -> List[str]:
        """Dimension names in declaration order (also the tie-break order)."""
        return [member.value for member in self.intents]

    def dimension_for(self, role: Role) -> Optional[str]:
        member = self.roles.get(role)
        return member.value if member is not None else None

    def keywords_for(self, intent: Enum, cultural_context: Optional[str] = None) -> Tuple[str, ...]:
        """Base keywords plus any cultural variant keywords. Variants only add."""
        base = tuple(self.keywords.get(intent, ()))
        if not cultural_context:
            return base
        variant = self.cultural_variants.get(cultural_context, {}).get(intent, ())
        extra = tuple(k for k in variant if k not in base)
        return base + extra

    def variant_keywords(self, cultural_context: str) -> List[str]:
        words: List[str] = []
        for kws in self.cultural_variants.get(cultural_context, {}).values():
            words.extend(kws)
        return words


def registered_taxonomies() -> Dict[str, Taxonomy]:
    from semantic_engine.keywords.business import BUSINESS_TAXONOMY
    from semantic_engine.keywords.relationship import RELATIONSHIP_TAXONOMY
    return {
        BUSINESS_TAXONOMY.name:     BUSINESS_TAXONOMY,
        RELATIONSHIP_TAXONOMY.name: RELATIONSHIP_TAXONOMY,
    }


def get_taxonomy(name: Optional[str]) -> Taxonomy:
    """Look up a registered taxonomy. Unknown names fall back to business."""
    taxonomies = registered_taxonomies()
    key = (name or 'business').lower()
    if key not in taxonomies:
        logger.warning(f"Unknown taxonomy '{name}'; using 'business'. Known: {sorted(taxonomies)}")
        key = 'business'
    return taxonomies[key]
