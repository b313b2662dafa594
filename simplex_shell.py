from big_m_simplex import big_m_simplex
from lp_problem import (
    LinearProgram,
    Sense,
    add_constraint,
    clear_constraints,
    clear_objective,
    delete_constraint,
    format_problem,
    parse_coefficients,
    replace_constraint,
    reset,
    set_num_variables,
    set_objective,
)
from showcase import EXAMPLES, load_example
from simplex_utils import _tableau_to_text, export_states_pdf_report, format_result, simplex_viewer

QUIT_WORDS = {"q", "quit", "exit"}


def _normalize(raw):
    return raw.strip().lower()


def _ask(prompt):
    raw = input(prompt).strip()
    if _normalize(raw) in QUIT_WORDS:
        raise KeyboardInterrupt
    return raw


def _pick_from_menu(prompt, options, default_key=None):
    while True:
        print(prompt)
        for i, opt in enumerate(options, start=1):
            marker = " (default)" if opt["key"] == default_key else ""
            print(f"  {i}) {opt['label']}{marker}")
        raw = _normalize(_ask("> "))

        if raw == "" and default_key is not None:
            return default_key
        if raw.isdigit():
            idx = int(raw) - 1
            if 0 <= idx < len(options):
                return options[idx]["key"]

        for opt in options:
            if raw in opt.get("aliases", ()):
                return opt["key"]

        print("Invalid choice. Enter a number from the list. Type q to quit.")


def _confirm(prompt):
    while True:
        raw = _normalize(_ask(f"{prompt} [y/N]: "))
        if raw in {"", "n", "no"}:
            return False
        if raw in {"y", "yes", "s", "si"}:
            return True
        print("Please answer y or n.")


def _ask_int(prompt):
    raw = _ask(prompt)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{raw!r} is not an integer.") from None


def _ask_coeffs(problem):
    n = problem.num_variables
    raw = _ask(f"Enter the {n} coefficients separated by spaces: ")
    return parse_coefficients(raw.replace(",", " ").split(), n)


def _ask_relation():
    options = [
        {"key": "<=", "label": "<=", "aliases": {"<=", "le"}},
        {"key": ">=", "label": ">=", "aliases": {">=", "ge"}},
        {"key": "=", "label": "=", "aliases": {"=", "==", "eq"}},
    ]
    return _pick_from_menu("Constraint type:", options)


def _ask_constraint(problem):
    coeffs = _ask_coeffs(problem)
    relation = _ask_relation()
    rhs = _ask("Right-hand side (RHS): ")
    return coeffs, relation, rhs


def _require_variables(problem):
    if problem.num_variables is None:
        print("Define the number of decision variables first (option 1).")
        return False
    return True


def handle_variables(problem):
    print("\n--- 1. Decision variables ---")
    current = "[undefined]" if problem.num_variables is None else str(problem.num_variables)
    print(f"Current value: {current}")
    options = [
        {"key": "set", "label": "Set number of variables"},
        {"key": "reset", "label": "Delete (reset the whole problem)"},
        {"key": "back", "label": "Back"},
    ]
    choice = _pick_from_menu("Choose an option:", options, default_key="back")

    if choice == "set":
        n = _ask_int("Number of variables: ")
        if problem.num_variables is not None and n != problem.num_variables and (
            problem.sense is not None or problem.constraints
        ):
            print("Changing the number of variables deletes the objective and all constraints.")
            if not _confirm("Continue?"):
                print("Cancelled.")
                return
        if set_num_variables(problem, n):
            print(f"Number of variables set to {n}.")
        else:
            print("The number of variables is unchanged.")
    elif choice == "reset":
        if _confirm("Delete the whole problem?"):
            reset(problem)
            print("Problem reset.")


def handle_objective(problem):
    if not _require_variables(problem):
        return
    print("\n--- 2. Objective function ---")
    if problem.sense is None:
        print("Current: [undefined]")
    else:
        print(f"Current: {problem.sense.label} Z = {problem.objective_coeffs}")
    options = [
        {"key": "set", "label": "Enter / modify objective"},
        {"key": "clear", "label": "Delete objective"},
        {"key": "back", "label": "Back"},
    ]
    choice = _pick_from_menu("Choose an option:", options, default_key="back")

    if choice == "set":
        sense_options = [
            {"key": Sense.MAXIMIZE, "label": "Maximize", "aliases": {"max", "maximize"}},
            {"key": Sense.MINIMIZE, "label": "Minimize", "aliases": {"min", "minimize"}},
        ]
        sense = _pick_from_menu("Objective sense:", sense_options)
        set_objective(problem, sense, _ask_coeffs(problem))
        print("Objective saved.")
    elif choice == "clear":
        clear_objective(problem)
        print("Objective deleted.")


def handle_constraints(problem):
    if not _require_variables(problem):
        return
    print("\n--- 3. Constraints ---")
    if not problem.constraints:
        print("No constraints defined.")
    for k, con in enumerate(problem.constraints, start=1):
        print(f"{k:2d}: {list(con.coefficients)} {con.relation.value} {con.rhs:.2f}")

    options = [
        {"key": "add", "label": "Add a constraint"},
        {"key": "edit", "label": "Modify a constraint"},
        {"key": "delete", "label": "Delete a constraint"},
        {"key": "clear", "label": "Delete ALL constraints"},
        {"key": "back", "label": "Back"},
    ]
    choice = _pick_from_menu("Choose an option:", options, default_key="back")

    if choice == "add":
        add_constraint(problem, *_ask_constraint(problem))
        print("Constraint added.")
    elif choice in {"edit", "delete"}:
        if not problem.constraints:
            print("There are no constraints.")
            return
        idx = _ask_int(f"Constraint number (1-{len(problem.constraints)}): ")
        if choice == "edit":
            replace_constraint(problem, idx, *_ask_constraint(problem))
            print(f"Constraint {idx} modified.")
        else:
            removed = delete_constraint(problem, idx)
            print(f"Constraint {idx} deleted: {list(removed.coefficients)} {removed.relation.value} {removed.rhs:g}")
    elif choice == "clear":
        if not problem.constraints:
            print("There are no constraints.")
        elif _confirm(f"Delete all {len(problem.constraints)} constraints?"):
            clear_constraints(problem)
            print("All constraints deleted.")


def handle_solve(problem):
    res = big_m_simplex(problem, {"launch_viewer": False})

    print("\nInitial simplex tableau:")
    print(_tableau_to_text(res.initial_tableau, res.var_names))
    print("\nFinal simplex tableau:")
    print(_tableau_to_text(res.final_tableau, res.var_names))
    print(format_result(res, problem))

    if problem.num_variables in (2, 3) and _confirm("Open the interactive viewer?"):
        simplex_viewer(res.states, problem)
    if _confirm("Save a PDF report?"):
        path = _ask("Report path [simplex_report.pdf]: ") or "simplex_report.pdf"
        export_states_pdf_report(res.states, problem, path)
        print(f"Report written to {path}")
    return res


def handle_example(problem):
    options = [{"key": key, "label": ex["name"]} for key, ex in EXAMPLES.items()]
    key = _pick_from_menu("Choose an example problem:", options)
    load_example(key, problem)
    print(f"Loaded: {EXAMPLES[key]['name']}")


MAIN_MENU = [
    {"key": "variables", "label": "Number of decision variables", "aliases": {"v", "vars"}},
    {"key": "objective", "label": "Objective function", "aliases": {"o", "obj"}},
    {"key": "constraints", "label": "Constraints", "aliases": {"c", "cons"}},
    {"key": "solve", "label": "Solve", "aliases": {"s", "solve"}},
    {"key": "example", "label": "Load an example problem", "aliases": {"e", "example"}},
    {"key": "quit", "label": "Quit", "aliases": set()},
]

HANDLERS = {
    "variables": handle_variables,
    "objective": handle_objective,
    "constraints": handle_constraints,
    "solve": handle_solve,
    "example": handle_example,
}


def main(problem=None):
    problem = LinearProgram() if problem is None else problem
    print("Big-M Simplex")
    print("-------------")
    print("Tip: choose with number keys. Type q to quit.")
    while True:
        print()
        print(format_problem(problem))
        try:
            choice = _pick_from_menu("--- MAIN MENU ---", MAIN_MENU)
            if choice == "quit":
                break
            HANDLERS[choice](problem)
        except KeyboardInterrupt:
            break
        except (ValueError, IndexError) as e:
            print(f"Error: {e}")
    print("Goodbye.")


if __name__ == "__main__":
    main()
