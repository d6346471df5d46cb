"""Placeholder substitution rules.

A rule is either *literal* (every occurrence becomes the same fixed string)
or *generated* (a generator is called once per occurrence, so two secret
placeholders in the same file receive two different values).
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

SECRET_BYTES = 32


def generate_secret(num_bytes: int = SECRET_BYTES) -> str:
    """Return ``num_bytes`` of CSPRNG output as lowercase hex (64 chars by default)."""
    return secrets.token_hex(num_bytes)


class RuleKind(str, Enum):
    LITERAL = "literal"
    GENERATED = "generated"


@dataclass(frozen=True)
class RenameRule:
    """Replace every occurrence of ``old_token``.

    Use :meth:`literal` or :meth:`generated` rather than the constructor.
    """

    old_token: str
    kind: RuleKind
    new_token: str | None = None
    generator: Callable[[], str] | None = None

    def __post_init__(self) -> None:
        if not self.old_token:
            raise ValueError("RenameRule.old_token must not be empty")
        if self.kind is RuleKind.LITERAL:
            if self.new_token is None or self.generator is not None:
                raise ValueError("literal rules take a new_token and no generator")
        elif self.generator is None or self.new_token is not None:
            raise ValueError("generated rules take a generator and no new_token")

    @classmethod
    def literal(cls, old_token: str, new_token: str) -> "RenameRule":
        return cls(old_token=old_token, kind=RuleKind.LITERAL, new_token=new_token)

    @classmethod
    def generated(
        cls, old_token: str, generator: Callable[[], str] = generate_secret
    ) -> "RenameRule":
        return cls(old_token=old_token, kind=RuleKind.GENERATED, generator=generator)

    def apply(self, text: str) -> tuple[str, int]:
        """Substitute every occurrence in *text*.

        Returns:
            ``(new_text, substitution_count)``.
        """
        if self.kind is RuleKind.LITERAL:
            count = text.count(self.old_token)
            if not count:
                return text, 0
            return text.replace(self.old_token, self.new_token), count

        generator = self.generator
        return re.subn(re.escape(self.old_token), lambda _match: generator(), text)


def apply_rules(text: str, rules: Iterable[RenameRule]) -> tuple[str, int]:
    """Apply *rules* in order and return the new text and total substitutions."""
    total = 0
    for rule in rules:
        text, count = rule.apply(text)
        total += count
    return text, total
