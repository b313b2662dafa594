import numpy as np
import pytest
from scipy.optimize import linprog

from big_m_simplex import (
    BIG_M,
    TerminationReason,
    big_m_simplex,
    build_simplex_table,
    extract_solution,
    simplex_solve,
)
from lp_problem import Constraint, DefinitionIncomplete, LinearProgram, Relation, Sense, linear_program
from showcase import load_example
from simplex_utils import MAX_ITER, OPT_TOL


def test_production_mix_is_optimal_at_vertex(production):
    res = big_m_simplex(production)

    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(12.0)
    assert res.variable_values[0] == pytest.approx(4.0)
    assert res.variable_values[1] == pytest.approx(0.0)
    assert res.iteration_count >= 1
    assert res.artificial_values == {}


def test_only_le_constraints_leave_objective_row_untouched(production):
    T, names = build_simplex_table(production)

    assert names == ["x1", "x2", "s1", "s2"]
    assert not any(nm.startswith("a") for nm in names)
    assert T[-1].tolist() == [-3.0, -2.0, 0.0, 0.0, 0.0]
    assert T[:-1].tolist() == [[1.0, 1.0, 1.0, 0.0, 4.0], [1.0, 3.0, 0.0, 1.0, 6.0]]


def test_equality_constraint_gets_big_m_row(equality):
    T, names = build_simplex_table(equality)

    assert names == ["x1", "x2", "a1"]
    assert T[-1].tolist() == [1.0 - BIG_M, 1.0 - BIG_M, 0.0, -10.0 * BIG_M]

    res = simplex_solve(T, Sense.MINIMIZE, names)
    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(10.0)
    assert res.variable_values[:2].sum() == pytest.approx(10.0)
    assert res.artificial_values == {}


def test_covering_constraint_drives_artificial_out(covering):
    T, names = build_simplex_table(covering)
    assert names == ["x1", "x2", "e1", "a1"]
    assert T[0].tolist() == [1.0, 1.0, -1.0, 1.0, 5.0]

    res = simplex_solve(T, Sense.MINIMIZE, names)
    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(10.0)
    assert res.variable_values.tolist() == pytest.approx([5.0, 0.0, 0.0, 0.0])


def test_column_order_groups_slack_excess_artificial():
    problem = linear_program(
        [1, 1],
        [[1, 0], [0, 1], [1, 1], [2, 1]],
        [4, 1, 3, 2],
        ["<=", ">=", "=", ">="],
        sense=Sense.MINIMIZE,
    )
    T, names = build_simplex_table(problem)

    assert names == ["x1", "x2", "s1", "e1", "e2", "a1", "a2", "a3"]
    assert T.shape == (5, 9)
    assert T[0, 2] == 1.0
    assert (T[1, 3], T[1, 5]) == (-1.0, 1.0)
    assert T[2, 6] == 1.0
    assert (T[3, 4], T[3, 7]) == (-1.0, 1.0)
    # basic artificials are priced out of the objective row
    assert T[-1, 5:8].tolist() == [0.0, 0.0, 0.0]
    assert T[-1, -1] == pytest.approx(-BIG_M * (1 + 3 + 2))


def test_maximize_with_ge_constraint_penalizes_artificial():
    problem = linear_program([1], [[1], [1]], [1, 5], [">=", "<="], sense=Sense.MAXIMIZE)
    res = big_m_simplex(problem)

    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(5.0)
    assert res.variable_values[0] == pytest.approx(5.0)


def test_mixed_constraints():
    res = big_m_simplex(load_example("mixed"))

    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(19.0)
    assert res.variable_values[:2].tolist() == pytest.approx([3.0, 1.0])
    assert res.artificial_values == {}


def test_matches_scipy_on_3d_mixed_problem():
    problem = load_example("mixed_3d")
    res = big_m_simplex(problem)

    c = np.asarray(problem.objective_coeffs)
    A_ub, b_ub = [], []
    for con in problem.constraints:
        sign = 1.0 if con.relation.value == "<=" else -1.0
        A_ub.append(sign * np.asarray(con.coefficients))
        b_ub.append(sign * con.rhs)
    ref = linprog(-c, A_ub=A_ub, b_ub=b_ub, bounds=[(0, None)] * 3, method="highs")

    assert ref.status == 0
    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(-ref.fun, rel=1e-6)
    assert float(c @ res.variable_values[:3]) == pytest.approx(-ref.fun, rel=1e-6)


def test_unbounded_without_pivot():
    res = big_m_simplex(load_example("unbounded"))

    assert res.termination_reason is TerminationReason.UNBOUNDED
    assert res.iteration_count == 0
    assert "reason_detail" in res.states[-1]["info"]


def test_unbounded_after_artificial_leaves():
    # maximize x1 subject to x1 >= 1
    problem = linear_program([1], [[1]], [1], [">="], sense=Sense.MAXIMIZE)
    res = big_m_simplex(problem)

    assert res.termination_reason is TerminationReason.UNBOUNDED
    assert res.iteration_count == 1
    assert res.final_tableau.shape == (2, 4)


def test_iteration_limit_stops_pivoting():
    res = big_m_simplex(load_example("mixed"), {"max_iter": 1})

    assert res.termination_reason is TerminationReason.ITERATION_LIMIT
    assert res.iteration_count == 1
    assert res.states[-1]["info"]["final"] == "iteration-limit"


def test_default_iteration_cap():
    assert MAX_ITER == 200
    assert BIG_M == 1e6
    assert OPT_TOL == 1e-8


def test_ties_go_to_lowest_column_and_row():
    # x1 and x2 both price at -2; rows 1 and 2 both give ratio 2
    problem = linear_program([2, 2], [[1, 0], [2, 0], [0, 1]], [2, 4, 3], ["<=", "<=", "<="])
    res = big_m_simplex(problem)

    first = res.states[1]
    assert first["entering"] == "x1"
    assert first["leaving"] == "s1"
    assert first["info"]["min_ratio"] == pytest.approx(2.0)
    assert first["info"]["is_degenerate_step"] is False
    assert res.objective_value == pytest.approx(10.0)


def test_single_tied_pivot_leaves_second_row_degenerate():
    problem = linear_program([2, 2], [[1, 0], [2, 0], [0, 1]], [2, 4, 3], ["<=", "<=", "<="])
    res = big_m_simplex(problem, {"max_iter": 1})

    T = res.final_tableau
    assert T[0].tolist() == [1.0, 0.0, 1.0, 0.0, 0.0, 2.0]
    assert T[1].tolist() == [0.0, 0.0, -2.0, 1.0, 0.0, 0.0]
    assert T[-1].tolist() == [0.0, -2.0, 2.0, 0.0, 0.0, 4.0]


def test_zero_ratio_pivot_is_degenerate():
    # x1 - x2 <= 0 blocks x1 at the origin
    problem = linear_program([1, 1], [[1, -1], [1, 0], [0, 1]], [0, 2, 3], ["<=", "<=", "<="])
    res = big_m_simplex(problem)

    first = res.states[1]
    assert first["entering"] == "x1"
    assert first["leaving"] == "s1"
    assert first["info"]["min_ratio"] == 0.0
    assert first["info"]["is_degenerate_step"] is True
    assert first["z"] == pytest.approx(0.0)
    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.objective_value == pytest.approx(5.0)
    assert res.variable_values[:2].tolist() == pytest.approx([2.0, 3.0])


def test_extraction_is_idempotent(production):
    res = big_m_simplex(production)
    before = res.final_tableau.copy()

    x1, z1 = extract_solution(res.final_tableau, Sense.MAXIMIZE)
    x2, z2 = extract_solution(res.final_tableau, Sense.MAXIMIZE)

    assert np.array_equal(res.final_tableau, before)
    assert np.array_equal(x1, res.variable_values)
    assert np.array_equal(x1, x2)
    assert z1 == z2 == res.objective_value


def test_minimize_sign_is_inverted(covering):
    T, names = build_simplex_table(covering)
    res = simplex_solve(T, Sense.MINIMIZE, names)

    assert res.final_tableau[-1, -1] == pytest.approx(-10.0)
    assert res.objective_value == pytest.approx(10.0)


def test_solve_works_in_place(production):
    T, names = build_simplex_table(production)
    res = simplex_solve(T, Sense.MAXIMIZE, names)

    assert res.final_tableau is T
    assert T[-1, -1] == pytest.approx(12.0)


def test_nonbasic_unit_column_reads_as_zero():
    # x1 shares its column with s1 but keeps a positive reduced cost
    problem = linear_program([1], [[1]], [5], ["<="], sense=Sense.MINIMIZE)
    res = big_m_simplex(problem)

    assert res.termination_reason is TerminationReason.OPTIMAL
    assert res.iteration_count == 0
    assert res.variable_values.tolist() == [0.0, 5.0]
    assert res.objective_value == 0.0


def test_negative_rhs_is_not_transformed():
    problem = linear_program([1, 1], [[1, 1]], [-2], ["<="], sense=Sense.MAXIMIZE)
    T, _ = build_simplex_table(problem)

    assert T[0].tolist() == [1.0, 1.0, 1.0, -2.0]


def test_state_trail_records_every_pivot(production):
    res = big_m_simplex(production)

    assert res.states[0]["info"]["event"] == "initial"
    pivots = [s for s in res.states if s["info"].get("event") == "pivot"]
    assert len(pivots) == res.iteration_count
    assert pivots[0]["entering"] == "x1"
    assert pivots[0]["leaving"] == "s1"
    assert res.states[-1]["info"]["final"] == "optimal"


def test_record_states_can_be_disabled(production):
    res = big_m_simplex(production, {"record_states": False})

    assert res.states == []
    assert res.objective_value == pytest.approx(12.0)


def test_incomplete_problem_is_rejected():
    with pytest.raises(DefinitionIncomplete) as exc:
        build_simplex_table(LinearProgram())

    assert exc.value.missing == ["num_variables", "sense", "constraints"]


def test_constraint_length_mismatch_is_rejected(production):
    production.constraints[1] = Constraint((1.0,), Relation.LE, 6.0)

    with pytest.raises(DefinitionIncomplete, match="constraint 2 length"):
        build_simplex_table(production)


def test_report_written_when_requested(production, tmp_path):
    out = tmp_path / "run.pdf"
    big_m_simplex(production, {"report_pdf_path": str(out)})

    assert out.read_bytes().startswith(b"%PDF")
