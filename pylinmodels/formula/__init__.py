"""
Formulas, factor encoding and design matrices.

Public API:
    parse_formula(formula) -> ParsedFormula
    model_frame(formula, data, reference=...) -> ModelFrame
    build_model_matrix(source, terms, ...) -> ModelMatrix
    encode_treatment(values, name, reference=...) -> (X, TreatmentCoding)

Example:
    >>> frame = model_frame("pitch ~ sex", df, reference={'sex': 'female'})
    >>> frame.fixed.column_names
    ('(Intercept)', 'sexmale')
"""

from pylinmodels.formula._contrasts import (
    TreatmentCoding,
    encode_treatment,
    factor_levels,
    interaction_columns,
)
from pylinmodels.formula._parser import ParsedFormula, RandomTerm, parse_formula
from pylinmodels.formula.frame import (
    INTERCEPT_NAME,
    ModelFrame,
    ModelMatrix,
    build_model_matrix,
    complete_cases,
    default_column_names,
    model_frame,
)

__all__ = [
    "TreatmentCoding",
    "encode_treatment",
    "factor_levels",
    "interaction_columns",
    "ParsedFormula",
    "RandomTerm",
    "parse_formula",
    "INTERCEPT_NAME",
    "ModelFrame",
    "ModelMatrix",
    "build_model_matrix",
    "complete_cases",
    "default_column_names",
    "model_frame",
]
