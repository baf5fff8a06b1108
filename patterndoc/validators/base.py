"""Core validation data structures and the catalog validator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Sequence

from ..config import DEFAULT_CYCLE_BOUND
from ..diagnostics import sort_diagnostics
from ..logging import get_logger
from ..models import Catalog, Diagnostic

logger = get_logger("validators")


@dataclass
class ValidationContext:
    """Context shared with rules when evaluating a finalized catalog."""

    catalog: Catalog
    cycle_bound: int = DEFAULT_CYCLE_BOUND
    required_sections: Sequence[str] = field(default_factory=tuple)


class Validator(Protocol):
    """Protocol implemented by catalog rules."""

    name: str

    def validate(self, context: ValidationContext) -> List[Diagnostic]:
        """Run the rule and return any findings."""


class CatalogValidator:
    """Applies every rule to a catalog and returns the merged diagnostics."""

    def __init__(
        self,
        rules: Optional[Iterable[Validator]] = None,
        *,
        cycle_bound: int = DEFAULT_CYCLE_BOUND,
        required_sections: Sequence[str] = (),
    ) -> None:
        if rules is None:
            from .rules import default_rules

            rules = default_rules()
        self.rules = list(rules)
        self.cycle_bound = cycle_bound
        self.required_sections = tuple(required_sections)

    def validate(self, catalog: Catalog) -> List[Diagnostic]:
        context = ValidationContext(
            catalog=catalog,
            cycle_bound=self.cycle_bound,
            required_sections=self.required_sections,
        )
        diagnostics: List[Diagnostic] = []
        for rule in self.rules:
            found = rule.validate(context)
            logger.debug("Rule %s reported %d diagnostics", rule.name, len(found))
            diagnostics.extend(found)
        return sort_diagnostics(diagnostics)


__all__ = ["CatalogValidator", "ValidationContext", "Validator"]
