"""SMT solver session — the one boundary to the z3 library.

The session exposes a narrow interface (declare / add / push / pop /
check / value) over encoder-side ``Constraint`` objects.  No z3 type
leaves this module: constraints come in as tagged disjunctions of linear
literals and model values go out as exact ``Fraction``s.

Each session owns a private z3 context, so sessions never share state
and one arrangement run cannot observe another.
"""

from __future__ import annotations

import enum
import logging
from fractions import Fraction
from typing import Iterable

import z3

from .models import Constraint, LinearTerm, Literal


log = logging.getLogger(__name__)


class Verdict(enum.Enum):
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


class SolverSession:
    """Incremental SMT session over linear real arithmetic."""

    def __init__(self, timeout_ms: int | None = None) -> None:
        self._ctx = z3.Context()
        self._solver = z3.Solver(ctx=self._ctx)
        if timeout_ms:
            self._solver.set("timeout", int(timeout_ms))
        self._reals: dict[str, z3.ArithRef] = {}
        self._depth = 0
        self._model: z3.ModelRef | None = None
        self.checks = 0
        self.posted = 0

    # ── Declarations ───────────────────────────────────────────────

    def declare_real(self, name: str) -> None:
        if name not in self._reals:
            self._reals[name] = z3.Real(name, self._ctx)

    # ── Translation ────────────────────────────────────────────────

    def _numeral(self, value: Fraction) -> z3.ArithRef:
        return z3.RealVal(str(value), self._ctx)

    def _term(self, term: LinearTerm) -> z3.ArithRef:
        parts = []
        for name, coef in term.coefficients:
            if name not in self._reals:
                raise KeyError(f"Undeclared solver variable '{name}'")
            var = self._reals[name]
            parts.append(var if coef == 1 else self._numeral(coef) * var)
        if term.constant != 0 or not parts:
            parts.append(self._numeral(term.constant))
        return parts[0] if len(parts) == 1 else z3.Sum(parts)

    def _literal(self, lit: Literal) -> z3.BoolRef:
        if lit.term.is_constant:
            c = lit.term.constant
            return z3.BoolVal(c < 0 if lit.strict else c <= 0, self._ctx)
        zero = self._numeral(Fraction(0))
        expr = self._term(lit.term)
        return expr < zero if lit.strict else expr <= zero

    def _clause(self, constraint: Constraint) -> z3.BoolRef:
        # Constant literals are decided here so fixed objects cost nothing.
        live = []
        for lit in constraint.literals:
            if lit.term.is_constant:
                if lit.holds({}):
                    return z3.BoolVal(True, self._ctx)
                continue
            live.append(self._literal(lit))
        if not live:
            return z3.BoolVal(False, self._ctx)
        return live[0] if len(live) == 1 else z3.Or(live)

    # ── Assertions ─────────────────────────────────────────────────

    def add(self, constraint: Constraint) -> None:
        clause = self._clause(constraint)
        if z3.is_true(clause):
            return
        self._solver.add(clause)
        self.posted += 1

    def add_all(self, constraints: Iterable[Constraint]) -> None:
        for c in constraints:
            self.add(c)

    def push(self) -> None:
        self._solver.push()
        self._depth += 1

    def pop(self) -> None:
        if self._depth == 0:
            raise RuntimeError("pop() without matching push()")
        self._solver.pop()
        self._depth -= 1
        self._model = None

    @property
    def depth(self) -> int:
        return self._depth

    # ── Checking ───────────────────────────────────────────────────

    def check(self) -> Verdict:
        """Check satisfiability of everything posted so far."""
        self.checks += 1
        result = self._solver.check()
        if result == z3.sat:
            self._model = self._solver.model()
            return Verdict.SAT
        self._model = None
        if result == z3.unsat:
            return Verdict.UNSAT
        log.warning("Solver returned unknown: %s", self._solver.reason_unknown())
        return Verdict.UNKNOWN

    def value(self, name: str) -> Fraction:
        """Exact value of a real variable in the last SAT model."""
        if self._model is None:
            raise RuntimeError("No model available; last check was not SAT")
        val = self._model.eval(self._reals[name], model_completion=True)
        return Fraction(val.numerator_as_long(), val.denominator_as_long())

    def values(self) -> dict[str, Fraction]:
        return {name: self.value(name) for name in self._reals}
