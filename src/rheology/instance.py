"""Fully parametrised models with bound moduli evaluators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

import numpy as np
import sympy as sp

from .data import ProvenanceLog
from .expressions import CompiledExpression
from .model_class import MODULI, ModelClass, _check_modulus

# Returned in place of values for moduli the model does not define.
NOT_APPLICABLE = np.array([-1.0])
NOT_APPLICABLE.flags.writeable = False


def is_not_applicable(value) -> bool:
    return value is NOT_APPLICABLE


@dataclass(frozen=True, eq=False)
class ModelInstance:
    """A model class with every parameter bound to a number.

    The evaluators close over substituted trees only, so instances hold no
    mutable state and may be shared between threads.
    """

    model_class: ModelClass
    parameters: Mapping[str, float]
    expressions: Mapping[str, Optional[sp.Basic]]
    evaluators: Mapping[str, Optional[CompiledExpression]]
    log: ProvenanceLog = ()

    @property
    def name(self) -> str:
        return self.model_class.name

    @property
    def description(self) -> str:
        return self.model_class.description

    def has_modulus(self, modulus: str) -> bool:
        return self.evaluators[_check_modulus(modulus)] is not None

    def evaluate(self, modulus: str, values, *, workers: Optional[int] = None):
        """Evaluate ``modulus`` over a sequence, preserving length and order."""
        evaluator = self.evaluators[_check_modulus(modulus)]
        if evaluator is None:
            return NOT_APPLICABLE
        return evaluator.evaluate_array(values, workers=workers)

    def evaluate_point(self, modulus: str, value):
        evaluator = self.evaluators[_check_modulus(modulus)]
        if evaluator is None:
            return NOT_APPLICABLE
        return evaluator.evaluate(value)

    def G(self, t):
        return self.evaluate_point("G", t)

    def J(self, t):
        return self.evaluate_point("J", t)

    def Gp(self, w):
        return self.evaluate_point("Gp", w)

    def Gpp(self, w):
        return self.evaluate_point("Gpp", w)

    def G_array(self, t, *, workers: Optional[int] = None):
        return self.evaluate("G", t, workers=workers)

    def J_array(self, t, *, workers: Optional[int] = None):
        return self.evaluate("J", t, workers=workers)

    def Gp_array(self, w, *, workers: Optional[int] = None):
        return self.evaluate("Gp", w, workers=workers)

    def Gpp_array(self, w, *, workers: Optional[int] = None):
        return self.evaluate("Gpp", w, workers=workers)

    def describe(self) -> str:
        values = ", ".join(f"{name}={value:g}" for name, value in self.parameters.items())
        return f"{self.name}({values}): {self.description}"

    def __repr__(self) -> str:
        moduli = ",".join(m for m in MODULI if self.evaluators[m] is not None)
        return f"<ModelInstance {self.describe()} [{moduli}]>"


__all__ = ["NOT_APPLICABLE", "ModelInstance", "is_not_applicable"]
