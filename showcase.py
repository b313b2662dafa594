from datetime import datetime
from pathlib import Path
from time import perf_counter

from big_m_simplex import big_m_simplex
from lp_problem import Sense, linear_program

EXAMPLES = {
    "production": {
        "name": "2D Production Mix (all <=)",
        "sense": Sense.MAXIMIZE,
        "c": [3, 2],
        "A": [
            [1, 1],
            [1, 3],
        ],
        "b": [4, 6],
        "relations": ["<=", "<="],
    },
    "equality": {
        "name": "2D Equality Constraint (Big-M)",
        "sense": Sense.MINIMIZE,
        "c": [1, 1],
        "A": [
            [1, 1],
        ],
        "b": [10],
        "relations": ["="],
    },
    "diet": {
        "name": "2D Covering Constraint (Big-M)",
        "sense": Sense.MINIMIZE,
        "c": [2, 3],
        "A": [
            [1, 1],
        ],
        "b": [5],
        "relations": [">="],
    },
    "mixed": {
        "name": "2D Mixed Constraints (Big-M)",
        "sense": Sense.MAXIMIZE,
        "c": [5, 4],
        "A": [
            [1, 1],
            [1, 0],
            [0, 1],
        ],
        "b": [4, 3, 1],
        "relations": [">=", "<=", "="],
    },
    "mixed_3d": {
        "name": "3D Mixed Constraints (Big-M)",
        "sense": Sense.MAXIMIZE,
        "c": [11, 9, 7],
        "A": [
            [3, 2, 1],
            [2, 5, 3],
            [4, 1, 2],
            [1, 3, 4],
            [2, 2, 5],
            [1, 1, 1],
            [1, 2, 1],
        ],
        "b": [24, 33, 28, 30, 32, 4, 6],
        "relations": ["<=", "<=", "<=", "<=", "<=", ">=", ">="],
    },
    "unbounded": {
        "name": "2D Unbounded Direction",
        "sense": Sense.MAXIMIZE,
        "c": [1, 0],
        "A": [
            [-1, 1],
        ],
        "b": [2],
        "relations": ["<="],
    },
}


def load_example(key, problem=None):
    ex = EXAMPLES[key]
    loaded = linear_program(ex["c"], ex["A"], ex["b"], ex["relations"], sense=ex["sense"])
    if problem is None:
        return loaded
    problem.num_variables = loaded.num_variables
    problem.sense = loaded.sense
    problem.objective_coeffs = loaded.objective_coeffs
    problem.constraints = loaded.constraints
    return problem


def _report_path(tag):
    out_dir = Path(__file__).resolve().parent / "reports"
    out_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    return str(out_dir / f"showcase_{tag}_{ts}.pdf")


def run_showcase(keys=None, with_reports=False):
    keys = list(EXAMPLES) if keys is None else list(keys)

    print("Big-M Simplex Showcase")
    print("----------------------")
    results = {}
    for key in keys:
        problem = load_example(key)
        opts = {"launch_viewer": False}
        if with_reports:
            opts["report_pdf_path"] = _report_path(key)

        t0 = perf_counter()
        res = big_m_simplex(problem, opts)
        dt = perf_counter() - t0

        decision = ", ".join(
            f"{nm}={v:.6g}" for nm, v in zip(res.var_names, res.variable_values) if nm.startswith("x")
        )
        print(f"{EXAMPLES[key]['name']}: {res.termination_reason.value}, z*={res.objective_value:.8g}, "
              f"{decision}, iterations={res.iteration_count}, time={dt:.3f}s")
        if with_reports:
            print(f"  report: {opts['report_pdf_path']}")
        results[key] = res
    return results


def main():
    run_showcase(with_reports=True)


if __name__ == "__main__":
    main()
