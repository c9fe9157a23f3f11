"""
Model formula parsing.

Formulas use the R / lme4 notation:

    pitch ~ sex
    frequency ~ attitude * gender
    frequency ~ attitude + gender + (1 | subject) + (1 + attitude | scenario)

Random-effect terms ``( ... | group)`` are extracted first; the remaining
fixed-effect formula and the left side of each bar are expanded by patsy
(``a*b`` -> ``a + b + a:b``, ``- 1`` / ``0 +`` remove the intercept).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from patsy import ModelDesc, PatsyError

from pylinmodels.core.exceptions import ValidationError

_BAR_TERM = re.compile(r'\+?\s*\(([^()|]*)\|([^()|]*)\)')
_IDENTIFIER = re.compile(r'^[A-Za-z_.][A-Za-z0-9_.]*$')


@dataclass(frozen=True)
class RandomTerm:
    """
    One ``(terms | group)`` block.

    Attributes:
        group: Grouping factor name
        terms: Slope terms varying by group (excluding the intercept)
        intercept: Whether a random intercept is included
    """
    group: str
    terms: tuple[str, ...]
    intercept: bool = True

    @property
    def effect_names(self) -> tuple[str, ...]:
        """Per-group effect names: '1' for the intercept, then slope terms."""
        return (('1',) if self.intercept else ()) + self.terms

    @property
    def label(self) -> str:
        effects = self.effect_names if self.intercept else ('0',) + self.terms
        return f"({' + '.join(effects)} | {self.group})"

    def component_labels(self) -> tuple[str, ...]:
        """One label per random effect, used for nesting checks."""
        return tuple(f"({name} | {self.group})" for name in self.effect_names)


@dataclass(frozen=True)
class ParsedFormula:
    """
    A parsed model formula.

    Attributes:
        formula: The original formula string
        response: Response column name
        terms: Fixed-effect terms in model order, excluding the intercept
        intercept: Whether the fixed part has an intercept
        random: Random-effect blocks in formula order
    """
    formula: str
    response: str
    terms: tuple[str, ...]
    intercept: bool
    random: tuple[RandomTerm, ...] = ()

    @property
    def variables(self) -> tuple[str, ...]:
        """Every column the formula refers to, without duplicates."""
        names = [self.response]
        for term in self.terms:
            names.extend(term.split(':'))
        for rt in self.random:
            for term in rt.terms:
                names.extend(term.split(':'))
            names.append(rt.group)
        return tuple(dict.fromkeys(names))

    @property
    def has_random_effects(self) -> bool:
        return len(self.random) > 0


def _expand(rhs: str, context: str) -> tuple[tuple[str, ...], bool]:
    """Expand a right-hand side with patsy into (terms, has_intercept)."""
    try:
        desc = ModelDesc.from_formula(rhs)
    except PatsyError as e:
        raise ValidationError(f"{context}: cannot parse {rhs!r}: {e}") from e

    terms = []
    intercept = False
    for term in desc.rhs_termlist:
        if not term.factors:
            intercept = True
        else:
            terms.append(':'.join(factor.name() for factor in term.factors))
    return tuple(terms), intercept


def parse_formula(formula: str) -> ParsedFormula:
    """
    Parse ``response ~ fixed terms + (random terms | group) ...``.

    Args:
        formula: Formula string

    Returns:
        ParsedFormula

    Raises:
        ValidationError: If the formula has no '~', no single response,
            or a malformed random-effect block
    """
    if formula.count('~') != 1:
        raise ValidationError(
            f"formula: expected exactly one '~' in {formula!r}"
        )

    lhs, rhs = (part.strip() for part in formula.split('~'))
    if not _IDENTIFIER.match(lhs):
        raise ValidationError(
            f"formula: response must be a single column name, got {lhs!r}"
        )

    random_terms: list[RandomTerm] = []

    def _collect(match: re.Match) -> str:
        effects, group = match.group(1).strip(), match.group(2).strip()
        if not _IDENTIFIER.match(group):
            raise ValidationError(
                f"formula: grouping factor must be a column name, got {group!r}"
            )
        terms, intercept = _expand(effects or '1', f"random term for {group}")
        if not terms and not intercept:
            raise ValidationError(f"formula: empty random term for {group!r}")
        random_terms.append(RandomTerm(group=group, terms=terms, intercept=intercept))
        return ''

    fixed_rhs = _BAR_TERM.sub(_collect, rhs).strip()
    fixed_rhs = re.sub(r'^\+\s*', '', fixed_rhs)
    if '|' in fixed_rhs:
        raise ValidationError(
            f"formula: random-effect terms must be written as '(terms | group)', got {rhs!r}"
        )
    terms, intercept = _expand(fixed_rhs or '1', "fixed effects")

    return ParsedFormula(
        formula=formula,
        response=lhs,
        terms=terms,
        intercept=intercept,
        random=tuple(random_terms),
    )
