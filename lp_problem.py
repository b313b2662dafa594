from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Sense(Enum):
    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"

    @property
    def label(self):
        return "Maximize" if self is Sense.MAXIMIZE else "Minimize"


class Relation(Enum):
    LE = "<="
    GE = ">="
    EQ = "="

    @classmethod
    def parse(cls, raw):
        if isinstance(raw, Relation):
            return raw
        key = str(raw).strip()
        aliases = {
            "<=": cls.LE, "≤": cls.LE, "1": cls.LE,
            ">=": cls.GE, "≥": cls.GE, "2": cls.GE,
            "=": cls.EQ, "==": cls.EQ, "3": cls.EQ,
        }
        if key not in aliases:
            raise ValueError(f"Unknown constraint relation {raw!r}; use <=, >= or =.")
        return aliases[key]


class DefinitionIncomplete(ValueError):
    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__("Problem is not completely defined: " + ", ".join(self.missing))


@dataclass(frozen=True)
class Constraint:
    coefficients: Tuple[float, ...]
    relation: Relation
    rhs: float


@dataclass
class LinearProgram:
    """
    User-built linear program. ``None`` marks a field that has not been
    defined yet; decision variables are implicitly non-negative.
    """
    num_variables: Optional[int] = None
    sense: Optional[Sense] = None
    objective_coeffs: List[float] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)


def parse_coefficients(values, expected):
    try:
        out = tuple(float(v) for v in values)
    except (TypeError, ValueError):
        raise ValueError("Coefficients must be numbers.") from None
    if len(out) != expected:
        raise ValueError(f"Expected {expected} coefficients, got {len(out)}.")
    return out


def _require_variables(problem):
    if problem.num_variables is None:
        raise ValueError("Define the number of decision variables first.")
    return problem.num_variables


def _check_index(problem, index):
    if not 1 <= index <= len(problem.constraints):
        raise IndexError(f"Constraint index {index} out of range (1-{len(problem.constraints)}).")
    return index - 1


def reset(problem):
    problem.num_variables = None
    problem.sense = None
    problem.objective_coeffs = []
    problem.constraints = []


def set_num_variables(problem, n):
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise ValueError("The number of variables must be a positive integer.")
    if problem.num_variables == n:
        return False
    # objective and constraints are sized by n, so they cannot survive a change
    reset(problem)
    problem.num_variables = n
    return True


def set_objective(problem, sense, coeffs):
    n = _require_variables(problem)
    coeffs = parse_coefficients(coeffs, n)
    problem.sense = sense if isinstance(sense, Sense) else Sense(str(sense).strip().lower())
    problem.objective_coeffs = list(coeffs)


def clear_objective(problem):
    problem.sense = None
    problem.objective_coeffs = []


def make_constraint(problem, coeffs, relation, rhs):
    n = _require_variables(problem)
    coeffs = parse_coefficients(coeffs, n)
    try:
        rhs = float(rhs)
    except (TypeError, ValueError):
        raise ValueError("RHS must be a number.") from None
    return Constraint(coeffs, Relation.parse(relation), rhs)


def add_constraint(problem, coeffs, relation, rhs):
    con = make_constraint(problem, coeffs, relation, rhs)
    problem.constraints.append(con)
    return con


def replace_constraint(problem, index, coeffs, relation, rhs):
    i = _check_index(problem, index)
    con = make_constraint(problem, coeffs, relation, rhs)
    problem.constraints[i] = con
    return con


def delete_constraint(problem, index):
    return problem.constraints.pop(_check_index(problem, index))


def clear_constraints(problem):
    problem.constraints = []


def missing_fields(problem):
    missing = []
    n = problem.num_variables
    if n is None or n <= 0:
        missing.append("num_variables")
    if problem.sense is None:
        missing.append("sense")
    if n is not None and len(problem.objective_coeffs) != n:
        missing.append("objective")
    if not problem.constraints:
        missing.append("constraints")
    for k, con in enumerate(problem.constraints, start=1):
        if n is not None and len(con.coefficients) != n:
            missing.append(f"constraint {k} length")
    return missing


def linear_program(c, A, b, relations, sense=Sense.MAXIMIZE):
    problem = LinearProgram()
    set_num_variables(problem, len(c))
    set_objective(problem, sense, c)
    for row, rel, rhs in zip(A, relations, b):
        add_constraint(problem, row, rel, rhs)
    return problem


def _fnum(v):
    return f"{v:g}"


def _term_list(coeffs):
    return " + ".join(f"{_fnum(a)}x{j}" for j, a in enumerate(coeffs, start=1))


def format_problem(problem):
    lines = ["=" * 40, "      CURRENT SIMPLEX PROBLEM", "-" * 40]
    if problem.num_variables is None:
        lines.append("1. Decision variables: [undefined]")
    else:
        lines.append(f"1. Decision variables: {problem.num_variables}")

    if problem.sense is None:
        lines.append("2. Objective:          [undefined]")
    else:
        coeffs = ", ".join(_fnum(a) for a in problem.objective_coeffs)
        lines.append(f"2. Objective:          {problem.sense.label} Z = {coeffs}")

    lines.append(f"3. Constraints:        [{len(problem.constraints)} defined]")
    for k, con in enumerate(problem.constraints, start=1):
        coeffs = ", ".join(_fnum(a) for a in con.coefficients)
        lines.append(f"   {k:2d}: ({coeffs}) {con.relation.value} {con.rhs:.2f}")
    lines.append("=" * 40)
    return "\n".join(lines)


def format_model(problem):
    lines = []
    if problem.sense is not None:
        lines.append(f"  {problem.sense.label} Z = {_term_list(problem.objective_coeffs)}")
    for con in problem.constraints:
        lines.append(f"  {_term_list(con.coefficients)} {con.relation.value} {_fnum(con.rhs)}")
    lines.append("  xj >= 0")
    return "\n".join(lines)
