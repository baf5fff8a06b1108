"""Validation rules applied to a finalized catalog."""

from .base import CatalogValidator, ValidationContext, Validator
from .rules import (
    CitationRule,
    LanguageRule,
    LinkClosureRule,
    RelatedCycleRule,
    SectionRule,
    TitleRule,
    default_rules,
)

__all__ = [
    "CatalogValidator",
    "CitationRule",
    "LanguageRule",
    "LinkClosureRule",
    "RelatedCycleRule",
    "SectionRule",
    "TitleRule",
    "ValidationContext",
    "Validator",
    "default_rules",
]
