from itertools import combinations
import math
import os

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.widgets import Slider, Button
from matplotlib.backends.backend_pdf import PdfPages
from mpl_toolkits.mplot3d.art3d import Poly3DCollection, Line3DCollection
from scipy.spatial import ConvexHull

from lp_problem import Relation, Sense, format_model

BIG_M = 1e6
OPT_TOL = 1e-8
MAX_ITER = 200


def _unit_row(col):
    nz = np.flatnonzero(col)
    if nz.size == 1 and col[nz[0]] == 1.0:
        return int(nz[0])
    return -1


def _basic_columns(T):
    # column j is basic in row i when it is e_i over the constraint rows and
    # its reduced cost is zero; the lowest such column claims the row
    m = T.shape[0] - 1
    basis = np.full(m, -1, dtype=int)
    for j in range(T.shape[1] - 1):
        if T[-1, j] != 0.0:
            continue
        i = _unit_row(T[:m, j])
        if i >= 0 and basis[i] < 0:
            basis[i] = j
    return basis


def _extract_solution(T, basis):
    x = np.zeros(T.shape[1] - 1)
    for i, bi in enumerate(basis):
        if bi >= 0:
            x[bi] = T[i, -1]
    return x


def _objective_value(T, sense):
    z = float(T[-1, -1])
    if sense is Sense.MINIMIZE:
        z = -z
    return z


def _add_state(states, T, names, basis, step, entering, leaving, ratios, n_orig, sense, info=None):
    x = _extract_solution(T, basis)
    states.append({
        "T": T.copy(),
        "names": names[:],
        "basis": basis.copy(),
        "step": step,
        "entering": entering,
        "leaving": leaving,
        "ratios": np.array(ratios, dtype=float) if len(ratios) else np.array([]),
        "x": x[:n_orig].copy(),
        "z": _objective_value(T, sense),
        "info": {} if info is None else info,
    })
    return states


def _fnum(v):
    if not np.isfinite(v):
        return "inf"
    if abs(v) < 1e-12:
        v = 0.0
    return f"{v:.6g}"


def _tableau_to_text(T, names, basis=None, ratios=(), state=None):
    m = T.shape[0] - 1
    n = T.shape[1] - 1
    if basis is None:
        basis = _basic_columns(T)

    rows = [["row"] + list(names) + ["rhs", "ratio"]]
    for i in range(m):
        ratio_txt = "inf" if (len(ratios) == 0 or not np.isfinite(ratios[i])) else _fnum(ratios[i])
        label = names[basis[i]] if basis[i] >= 0 else "?"
        rows.append([f"R{i+1}({label})"] + [_fnum(T[i, j]) for j in range(n)] + [_fnum(T[i, -1]), ratio_txt])
    rows.append(["Rz"] + [_fnum(T[-1, j]) for j in range(n)] + [_fnum(T[-1, -1]), "-"])

    widths = [max(len(str(rows[r][c])) for r in range(len(rows))) for c in range(len(rows[0]))]

    x_all = _extract_solution(T, basis)
    decision = [f"{nm}={_fnum(x_all[j])}" for j, nm in enumerate(names) if nm.startswith("x")]

    out = [f"Current solution: {', '.join(decision) if decision else 'n/a'}"]
    if state is not None:
        out.append(f"Tableau objective: {_fnum(state['z'])}")
    out.append("")
    out.append(" | ".join(str(rows[0][c]).rjust(widths[c]) for c in range(len(widths))))
    out.append("-+-".join("-" * widths[c] for c in range(len(widths))))
    for r in range(1, len(rows)):
        out.append(" | ".join(str(rows[r][c]).rjust(widths[c]) for c in range(len(widths))))
    return "\n".join(out)


def format_result(res, problem):
    lines = ["", "====================== RESULTS ======================", "Original problem:"]
    lines.append(format_model(problem))
    lines.append("-" * 55)
    lines.append(f"Termination: {res.termination_reason.value}")
    lines.append(f"Iterations: {res.iteration_count}")
    for name, val in zip(res.var_names, res.variable_values):
        lines.append(f"{name:<4s} = {val:8.4f}")
    lines.append("-" * 55)

    reason = res.termination_reason.value
    if reason == "optimal":
        lines.append(f"Optimal value of Z = {round(res.objective_value, 4):g}")
        if res.artificial_values:
            art = ", ".join(f"{k}={v:.6g}" for k, v in res.artificial_values.items())
            lines.append(f"Warning: artificial variables remain positive ({art}); the problem looks infeasible.")
    elif reason == "unbounded":
        lines.append("The problem is unbounded.")
    else:
        lines.append("Iteration limit reached before optimality; showing the last tableau.")
        lines.append(f"Z at the last tableau = {round(res.objective_value, 4):g}")
    lines.append("=" * 55)
    return "\n".join(lines)


def _teaching_button_label(enabled):
    return "Teaching: ON" if enabled else "Teaching: OFF"


def _teaching_explanation(state):
    info = state.get("info", {})
    if not info:
        return ""

    event = info.get("event", "")
    lines = []

    if event == "pivot":
        lines.append("Teaching Mode | Rule: DANTZIG")
        lines.append(f"Pivot: {state.get('entering', '?')} enters, {state.get('leaving', '?')} leaves.")

        enter_val = info.get("enter_value", None)
        if enter_val is not None:
            lines.append(f"Reduced cost of entering variable: {enter_val:.6g}")

        cands = info.get("leave_candidates", [])
        if cands:
            lines.append("Ratio test rows: " + ", ".join(f"R{r+1}" for r in cands))

        min_ratio = info.get("min_ratio", None)
        if min_ratio is not None:
            lines.append(f"Minimum ratio theta*: {min_ratio:.6g}")

        if info.get("is_degenerate_step", False):
            lines.append("Degenerate pivot detected (theta* is ~0).")

        reason = info.get("reason", "")
        if reason:
            lines.append(f"Why this pivot: {reason}")

    elif event == "initial":
        lines.append("Teaching Mode | Initial tableau")
        reason = info.get("reason", "")
        if reason:
            lines.append(reason)
        art = [nm for nm in state["names"] if nm.startswith("a")]
        if art:
            lines.append("Big-M: artificial variables " + ", ".join(art) + " are penalized in the objective row.")

    final = info.get("final", "")
    if final == "optimal":
        lines.append("All reduced costs are non-negative: the tableau is optimal.")
    elif final:
        lines.append(f"Stopped: {final}. {info.get('reason_detail', '')}".rstrip())

    return "\n".join(lines)


def _state_header(states, idx):
    s = states[idx]
    header = f"{idx+1}/{len(states)} | step {s['step']}"
    if s["entering"]:
        header += f" | ENTER: {s['entering']} | LEAVE: {s['leaving']}"
    header += f" | Z={s['z']:.6g}"
    return header


def _true_objective(problem, x):
    c = np.asarray(problem.objective_coeffs, dtype=float)
    return float(np.dot(c[:len(x)], x))


def simplex_viewer(states, problem, teaching=True):
    n = problem.num_variables
    E, hull_data = extreme_points_nd(problem)
    ui = {"teaching": bool(teaching)}

    fig = plt.figure(figsize=(16, 9))
    ax_plot = fig.add_axes([0.05, 0.18, 0.52, 0.75], projection="3d" if n == 3 else None)
    ax_txt = fig.add_axes([0.60, 0.33, 0.38, 0.60])
    ax_txt.axis("off")
    ax_prog = fig.add_axes([0.60, 0.18, 0.38, 0.12])
    ax_slider = fig.add_axes([0.10, 0.08, 0.35, 0.03])
    ax_prev = fig.add_axes([0.48, 0.07, 0.05, 0.05])
    ax_next = fig.add_axes([0.54, 0.07, 0.05, 0.05])
    ax_teach = fig.add_axes([0.60, 0.07, 0.18, 0.05])

    slider = Slider(ax_slider, "State", 1, len(states), valinit=1, valstep=1)
    btn_prev = Button(ax_prev, "Prev")
    btn_next = Button(ax_next, "Next")
    btn_teach = Button(ax_teach, _teaching_button_label(ui["teaching"]))

    def render(k):
        idx = int(k) - 1
        s = states[idx]
        ax_txt.clear()
        ax_txt.axis("off")
        ax_txt.text(0.0, 1.0, _state_header(states, idx), va="top", ha="left", fontsize=11, fontweight="bold")

        teach_text = _teaching_explanation(s) if ui["teaching"] else ""
        tableau_y = 0.96
        if teach_text:
            ax_txt.text(0.0, 0.96, teach_text, va="top", ha="left", fontsize=8.2, color="#1b4332")
            teach_lines = teach_text.count("\n") + 1
            tableau_y = max(0.10, 0.96 - 0.030 * teach_lines - 0.02)

        ax_txt.text(0.0, tableau_y, _tableau_to_text(s["T"], s["names"], s["basis"], s["ratios"], state=s),
                    va="top", ha="left", family="monospace", fontsize=8)
        _draw_state_plot(ax_plot, states, idx, problem, E, hull_data)
        _draw_objective_progress(ax_prog, states, idx, problem)
        fig.canvas.draw_idle()

    def on_prev(_):
        slider.set_val(max(1, int(slider.val) - 1))

    def on_next(_):
        slider.set_val(min(len(states), int(slider.val) + 1))

    def on_toggle_teaching(_):
        ui["teaching"] = not ui["teaching"]
        btn_teach.label.set_text(_teaching_button_label(ui["teaching"]))
        render(slider.val)

    slider.on_changed(render)
    btn_prev.on_clicked(on_prev)
    btn_next.on_clicked(on_next)
    btn_teach.on_clicked(on_toggle_teaching)

    render(1)
    plt.show()


def export_states_pdf_report(states, problem, output_path):
    E, hull_data = extreme_points_nd(problem)
    with PdfPages(output_path) as pdf:
        for idx in range(len(states)):
            fig = _report_page(states, idx, problem, E, hull_data)
            pdf.savefig(fig, bbox_inches="tight")
            plt.close(fig)
    return output_path


def _report_page(states, idx, problem, E, hull_data):
    s = states[idx]
    fig = plt.figure(figsize=(11.69, 8.27))
    grid = fig.add_gridspec(2, 2, height_ratios=[5, 1], width_ratios=[1.1, 1.0], hspace=0.2, wspace=0.15)
    ax_plot = fig.add_subplot(grid[0, 0], projection="3d" if problem.num_variables == 3 else None)
    ax_txt = fig.add_subplot(grid[0, 1])
    ax_prog = fig.add_subplot(grid[1, :])

    comment = _teaching_explanation(s) or "No comment for this state."
    page_text = "\n".join([
        _state_header(states, idx),
        "",
        comment,
        "",
        _tableau_to_text(s["T"], s["names"], s["basis"], s["ratios"], state=s),
    ])
    ax_txt.axis("off")
    ax_txt.text(0.0, 1.0, page_text, va="top", ha="left", family="monospace", fontsize=8)

    _draw_state_plot(ax_plot, states, idx, problem, E, hull_data)
    _draw_objective_progress(ax_prog, states, idx, problem)
    fig.suptitle(f"Big-M simplex, state {idx + 1} of {len(states)}", fontsize=12)
    return fig


def _plot_box(E, n, pad):
    # bounding box of the vertices, always containing the origin
    if E.size:
        lo, hi = E.min(axis=0) - pad, E.max(axis=0) + pad
    else:
        lo, hi = np.full(n, -pad), np.full(n, 1.0 + pad)
    return np.minimum(lo, -pad), np.maximum(hi, 1.0 + pad)


def _draw_state_plot(ax, states, idx, problem, E, hull_data):
    n = problem.num_variables
    ax.clear()
    if n not in (2, 3):
        ax.text(0.1, 0.5, "Plot is available for 2D or 3D LP only", transform=ax.transAxes)
        return

    path = np.array([st["x"][:n] for st in states[:idx + 1]], dtype=float)
    z = _true_objective(problem, states[idx]["x"])
    lo, hi = _plot_box(E, n, 0.5)

    for k, setter in enumerate([ax.set_xlabel, ax.set_ylabel, getattr(ax, "set_zlabel", None)][:n]):
        setter(f"x{k + 1}")
    ax.set_title(f"Feasible region and simplex path ({n}D)")

    _draw_level_set(ax, problem.objective_coeffs, z, lo, hi)
    if n == 2:
        _draw_region_2d(ax, E, hull_data)
        ax.grid(True)
    else:
        _draw_region_3d(ax, E, hull_data)

    ax.plot(*path.T, "-o", color="#d6451d", linewidth=2, markersize=5, zorder=4)
    ax.scatter(*path[-1:].T, c="r", s=60, zorder=5)

    ax.set_xlim(lo[0], hi[0])
    ax.set_ylim(lo[1], hi[1])
    if n == 3:
        ax.set_zlim(lo[2], hi[2])


def _draw_region_2d(ax, E, order):
    if order is not None and len(order) >= 3:
        ring = E[order]
        ax.fill(ring[:, 0], ring[:, 1], color="#8ecae6", alpha=0.35, edgecolor="#1f5f8b", zorder=2)
    if E.size:
        ax.scatter(E[:, 0], E[:, 1], c="k", s=25, zorder=3)


def _draw_region_3d(ax, E, hull):
    if hull:
        faces = [E[list(p)] for p in hull.get("polys", [])]
        if faces:
            ax.add_collection3d(Poly3DCollection(faces, facecolor="#8ecae6", edgecolor="#1f5f8b",
                                                 linewidths=1.0, alpha=0.5))
        segs = [(E[i], E[j]) for i, j in hull.get("edges", [])]
        if segs:
            ax.add_collection3d(Line3DCollection(segs, colors="#0b4f6c", linewidths=2.0))
    if E.size:
        ax.scatter(E[:, 0], E[:, 1], E[:, 2], c="k", s=30, depthshade=False)


def _draw_level_set(ax, c, z, lo, hi):
    """Draw ``c . x = z`` inside the box ``[lo, hi]`` as a line (2D) or surface (3D)."""
    c = np.asarray(c, dtype=float)
    n = len(lo)
    if np.max(np.abs(c)) < 1e-12:
        return

    # solve for the coordinate with the largest coefficient, sweep the others
    dom = int(np.argmax(np.abs(c)))
    free = [k for k in range(n) if k != dom]
    axes_vals = [np.linspace(lo[k], hi[k], 60 if n == 2 else 20) for k in free]
    grids = np.meshgrid(*axes_vals) if n == 3 else axes_vals
    coords = [None] * n
    for k, g in zip(free, grids):
        coords[k] = g
    coords[dom] = (z - sum(c[k] * coords[k] for k in free)) / c[dom]
    outside = (coords[dom] < lo[dom]) | (coords[dom] > hi[dom])
    coords[dom] = np.where(outside, np.nan, coords[dom])

    label = " + ".join(f"{v:.3g}x{k + 1}" for k, v in enumerate(c)) + f" = {z:.3g}"
    if n == 2:
        ax.plot(coords[0], coords[1], "k--", linewidth=1.5, label=label, zorder=1)
        ax.legend(loc="upper right", fontsize=8)
    else:
        ax.plot_surface(*coords, alpha=0.10, color="#f2b134", edgecolor="none")
        ax.text2D(0.02, 0.95, label, transform=ax.transAxes, fontsize=8)


def _draw_objective_progress(ax, states, idx, problem):
    shown = states[:idx + 1]
    steps = [s["step"] for s in shown]
    values = [_true_objective(problem, s["x"]) for s in shown]

    ax.clear()
    ax.plot(steps, values, "-o", color="#2a9d8f", linewidth=1.8, markersize=4)
    ax.scatter(steps[-1:], values[-1:], c="#d62828", s=28, zorder=4)
    ax.set_xlabel("Step", fontsize=8)
    ax.set_ylabel("z", fontsize=8)
    ax.tick_params(labelsize=8)
    ax.grid(True, alpha=0.3)
    if len(values) > 1:
        ax.set_title(f"Objective progress (change {values[-1] - values[0]:+.6g})", fontsize=9)
    else:
        ax.set_title("Objective progress", fontsize=9)


def extreme_points_nd(problem):
    """
    Vertices of the feasible region of a 2- or 3-variable problem.

    Returns ``(E, hull)`` where ``hull`` is the polygon vertex order for two
    variables and a dict of ``polys``/``edges``/``faces`` for three.
    """
    n = problem.num_variables
    if n not in (2, 3) or not problem.constraints:
        return np.empty((0, n or 0)), None

    G, h = [], []
    for con in problem.constraints:
        a = np.asarray(con.coefficients, dtype=float)
        if con.relation is Relation.LE:
            G.append(a)
            h.append(con.rhs)
        elif con.relation is Relation.GE:
            G.append(-a)
            h.append(-con.rhs)
        else:
            G.append(a)
            h.append(con.rhs)
            G.append(-a)
            h.append(-con.rhs)

    for j in range(n):
        ej = np.zeros(n)
        ej[j] = -1.0
        G.append(ej)
        h.append(0.0)

    G = np.asarray(G, dtype=float)
    h = np.asarray(h, dtype=float)

    pts = []
    for idxs in combinations(range(len(h)), n):
        M = G[list(idxs), :]
        if np.linalg.matrix_rank(M) < n:
            continue
        x = np.linalg.solve(M, h[list(idxs)])
        if np.all(G @ x <= h + 1e-8):
            pts.append(x)

    if not pts:
        return np.empty((0, n)), None

    E = np.unique(np.round(np.vstack(pts), 10), axis=0)
    if n == 2:
        if E.shape[0] >= 3 and np.linalg.matrix_rank(E - E.mean(axis=0)) == 2:
            return E, ConvexHull(E).vertices
        return E, np.arange(E.shape[0])
    return E, _convex_hull_3d(E)


def _convex_hull_3d(E, tol=1e-10):
    out = {"polys": [], "edges": [], "faces": []}
    if E.shape[0] < 2:
        return out

    centered = E - E.mean(axis=0, keepdims=True)
    _, s, vh = np.linalg.svd(centered, full_matrices=False)
    dim = int(np.sum(s > tol * max(s[0], 1.0)))

    if dim <= 1:
        d = centered @ vh[0]
        i_min, i_max = int(np.argmin(d)), int(np.argmax(d))
        if i_min != i_max:
            out["edges"] = [(min(i_min, i_max), max(i_min, i_max))]
        return out

    if dim == 2:
        # flat polytope: order the vertices in their own plane
        order = ConvexHull(centered @ vh[:2].T).vertices.astype(int) if E.shape[0] >= 3 else np.arange(E.shape[0])
        out["polys"] = [tuple(order.tolist())]
        out["edges"] = sorted(
            tuple(sorted((int(order[i]), int(order[(i + 1) % len(order)])))) for i in range(len(order))
        )
        o0 = int(order[0])
        out["faces"] = [(o0, int(order[i]), int(order[i + 1])) for i in range(1, len(order) - 1)]
        return out

    hull = ConvexHull(E, qhull_options="QJ")
    faces = [tuple(map(int, face)) for face in hull.simplices]
    edges = set()
    for a, b, c in faces:
        edges.add(tuple(sorted((a, b))))
        edges.add(tuple(sorted((b, c))))
        edges.add(tuple(sorted((a, c))))
    out["faces"] = faces
    out["polys"] = faces
    out["edges"] = sorted(edges)
    return out


def _defaults(opts):
    out = dict(opts or {})
    out.setdefault("big_m", BIG_M)
    out.setdefault("tol", OPT_TOL)
    out.setdefault("max_iter", MAX_ITER)
    out.setdefault("record_states", True)
    out.setdefault("teaching_mode", True)
    out.setdefault("launch_viewer", False)
    out.setdefault("report_pdf_path", None)

    for key in ("big_m", "tol"):
        try:
            value = float(out[key])
        except (TypeError, ValueError):
            value = math.nan
        if (not math.isfinite(value)) or value <= 0:
            raise ValueError(f"opts['{key}'] must be a positive finite number.")
        out[key] = value

    max_iter = out["max_iter"]
    if isinstance(max_iter, bool) or not isinstance(max_iter, (int, np.integer)) or max_iter <= 0:
        raise ValueError("opts['max_iter'] must be a positive integer.")
    out["max_iter"] = int(max_iter)

    report_pdf_path = out["report_pdf_path"]
    if isinstance(report_pdf_path, bool):
        out["report_pdf_path"] = "simplex_report.pdf" if report_pdf_path else None
    elif report_pdf_path is None:
        pass
    elif isinstance(report_pdf_path, os.PathLike):
        out["report_pdf_path"] = os.fspath(report_pdf_path)
    elif isinstance(report_pdf_path, str) and report_pdf_path.strip():
        out["report_pdf_path"] = report_pdf_path.strip()
    else:
        raise ValueError("opts['report_pdf_path'] must be None, True/False, or a non-empty path string.")

    if not out["record_states"] and (out["launch_viewer"] or out["report_pdf_path"] is not None):
        raise ValueError("opts['record_states'] must stay on for the viewer or the PDF report.")
    return out
