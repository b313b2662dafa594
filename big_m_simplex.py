from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from lp_problem import DefinitionIncomplete, Relation, Sense, missing_fields
from simplex_utils import (
    BIG_M,
    _add_state,
    _basic_columns,
    _defaults,
    _extract_solution,
    _objective_value,
    _unit_row,
    export_states_pdf_report,
    simplex_viewer,
)


class TerminationReason(Enum):
    OPTIMAL = "optimal"
    UNBOUNDED = "unbounded"
    ITERATION_LIMIT = "iteration-limit"


@dataclass
class SolveResult:
    final_tableau: np.ndarray
    objective_value: float
    variable_values: np.ndarray
    iteration_count: int
    termination_reason: TerminationReason
    var_names: List[str] = field(default_factory=list)
    states: list = field(default_factory=list)
    artificial_values: Dict[str, float] = field(default_factory=dict)
    initial_tableau: Optional[np.ndarray] = None

    @property
    def is_optimal(self):
        return self.termination_reason is TerminationReason.OPTIMAL


def build_simplex_table(problem, big_m=BIG_M):
    """
    Convert ``problem`` to the initial Big-M tableau.

    Columns are laid out as decision variables, slacks, excesses, then
    artificials, each group in constraint order; the last column is the
    RHS and the last row the objective row. Returns ``(T, names)``.
    """
    missing = missing_fields(problem)
    if missing:
        raise DefinitionIncomplete(missing)

    n = problem.num_variables
    m = len(problem.constraints)
    relations = [con.relation for con in problem.constraints]

    n_slack = relations.count(Relation.LE)
    n_excess = relations.count(Relation.GE)
    n_art = n_excess + relations.count(Relation.EQ)
    total = n + n_slack + n_excess + n_art

    T = np.zeros((m + 1, total + 1))
    basis = np.zeros(m, dtype=int)
    slack_col = n
    excess_col = n + n_slack
    art_col = n + n_slack + n_excess

    for i, con in enumerate(problem.constraints):
        T[i, :n] = con.coefficients
        if con.relation is Relation.LE:
            T[i, slack_col] = 1.0
            basis[i] = slack_col
            slack_col += 1
        elif con.relation is Relation.GE:
            T[i, excess_col] = -1.0
            T[i, art_col] = 1.0
            basis[i] = art_col
            excess_col += 1
            art_col += 1
        else:
            T[i, art_col] = 1.0
            basis[i] = art_col
            art_col += 1
        T[i, -1] = con.rhs

    z_sign = -1.0 if problem.sense is Sense.MAXIMIZE else 1.0
    T[-1, :n] = z_sign * np.asarray(problem.objective_coeffs, dtype=float)

    if n_art:
        art_start = total - n_art
        # +M in the internal (maximize) row makes every artificial costly,
        # whichever sense the user asked for.
        T[-1, art_start:total] = big_m
        for i, bi in enumerate(basis):
            if bi >= art_start and _unit_row(T[:m, bi]) == i:
                T[-1, :] -= big_m * T[i, :]

    names = (
        [f"x{k + 1}" for k in range(n)]
        + [f"s{k + 1}" for k in range(n_slack)]
        + [f"e{k + 1}" for k in range(n_excess)]
        + [f"a{k + 1}" for k in range(n_art)]
    )
    return T, names


def extract_solution(T, sense=Sense.MAXIMIZE):
    """Return ``(variable_values, objective_value)`` read off tableau ``T``."""
    x = _extract_solution(T, _basic_columns(T))
    return x, _objective_value(T, sense)


def _pivot(T, row, col):
    T[row, :] /= T[row, col]
    for r in range(T.shape[0]):
        if r != row:
            T[r, :] -= T[r, col] * T[row, :]


def simplex_solve(T, sense=Sense.MAXIMIZE, names=None, opts=None):
    """
    Drive tableau ``T`` to optimality with Dantzig's rule, in place.

    Entering column is the most negative reduced cost, leaving row the
    minimum ratio over strictly positive pivot-column entries; ties go to
    the lowest index in both cases. Stops as optimal, unbounded, or after
    ``opts["max_iter"]`` pivots.
    """
    opts = _defaults(opts)
    tol = opts["tol"]
    max_iter = opts["max_iter"]
    record = opts["record_states"]

    m = T.shape[0] - 1
    n = T.shape[1] - 1
    if names is None:
        names = [f"x{k + 1}" for k in range(n)]
    n_orig = sum(1 for nm in names if nm.startswith("x"))

    states = []
    step = 0
    enter_col = -1
    if record:
        states = _add_state(states, T, names, _basic_columns(T), step, "", "", [], n_orig, sense,
                            info={"event": "initial", "reason": "Initial tableau in standard form."})

    while True:
        if step >= max_iter:
            reason = TerminationReason.ITERATION_LIMIT
            break

        reduced_costs = T[-1, :n].copy()
        if np.all(reduced_costs >= -tol):
            reason = TerminationReason.OPTIMAL
            break

        enter_col = int(np.argmin(reduced_costs))
        col = T[:m, enter_col]
        rhs = T[:m, -1]
        leave_candidates = np.flatnonzero(col > 0)
        if leave_candidates.size == 0:
            reason = TerminationReason.UNBOUNDED
            break

        ratios = np.full(m, np.inf)
        ratios[leave_candidates] = rhs[leave_candidates] / col[leave_candidates]
        leave_row = int(leave_candidates[np.argmin(ratios[leave_candidates])])
        min_ratio = float(ratios[leave_row])

        basis = _basic_columns(T)
        entering = names[enter_col]
        leaving = names[basis[leave_row]] if basis[leave_row] >= 0 else f"R{leave_row + 1}"
        piv = float(T[leave_row, enter_col])

        _pivot(T, leave_row, enter_col)
        step += 1

        if record:
            states = _add_state(
                states,
                T,
                names,
                _basic_columns(T),
                step,
                entering,
                leaving,
                ratios,
                n_orig,
                sense,
                info={
                    "event": "pivot",
                    "reduced_costs": reduced_costs,
                    "enter_value": float(reduced_costs[enter_col]),
                    "leave_candidates": leave_candidates.tolist(),
                    "min_ratio": min_ratio,
                    "pivot_value": piv,
                    "is_degenerate_step": bool(abs(min_ratio) <= tol),
                    "reason": "Dantzig rule: most negative reduced cost; minimum-ratio test "
                              "(ties by smallest index).",
                },
            )

    x, z = extract_solution(T, sense)

    art_values = {}
    for j, nm in enumerate(names):
        if nm.startswith("a") and x[j] > tol:
            art_values[nm] = float(x[j])

    if record:
        states[-1]["info"]["final"] = reason.value
        if reason is not TerminationReason.OPTIMAL:
            states[-1]["info"]["reason_detail"] = _termination_text(reason, names, enter_col, max_iter)

    return SolveResult(
        final_tableau=T,
        objective_value=z,
        variable_values=x,
        iteration_count=step,
        termination_reason=reason,
        var_names=names[:],
        states=states,
        artificial_values=art_values,
    )


def _termination_text(reason, names, enter_col, max_iter):
    if reason is TerminationReason.UNBOUNDED:
        return f"{names[enter_col]} can grow without limit: no positive entry in its column."
    return f"Stopped after {max_iter} pivots without reaching optimality."


def big_m_simplex(problem, opts=None):
    opts = _defaults(opts)

    T, names = build_simplex_table(problem, big_m=opts["big_m"])
    T0 = T.copy()
    res = simplex_solve(T, problem.sense, names, opts)
    res.initial_tableau = T0

    if opts["report_pdf_path"] is not None:
        export_states_pdf_report(res.states, problem, opts["report_pdf_path"])

    if opts["launch_viewer"]:
        simplex_viewer(res.states, problem, teaching=opts["teaching_mode"])

    return res
