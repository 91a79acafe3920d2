from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .strategies.base import ResolutionStrategy
from .strategies.exact_code_strategy import ExactCodeStrategy
from .strategies.name_substring_strategy import NameSubstringStrategy
from .strategies.name_token_strategy import NameTokenStrategy


@dataclass
class ResolutionStrategyFactory:
    """Factory Pattern: build the ordered chain the resolver walks (first match wins)."""

    strict_fuzzy: bool = True

    def chain(self) -> List[ResolutionStrategy]:
        return [
            ExactCodeStrategy(),
            NameSubstringStrategy(),
            NameTokenStrategy(strict=self.strict_fuzzy),
        ]
