"""Interactive plots of ceteris paribus and aggregated profiles."""
from __future__ import annotations

from typing import Hashable, List, Optional, Sequence, Union

import pandas as pd
import plotly.graph_objects as go
from plotly.colors import qualitative
from plotly.subplots import make_subplots

from ..exceptions import EmptyProfileSet, InvalidConfiguration, UnknownVariable
from ..profiles.aggregation import X, AggregatedProfiles
from ..profiles.ceteris_paribus import CeterisParibusProfiles, IDS, LABEL, VNAME, YHAT
from ..profiles.splits import CATEGORICAL, NUMERICAL, VARIABLE_TYPES

ProfileResult = Union[CeterisParibusProfiles, AggregatedProfiles]

PALETTE = qualitative.Plotly


def _variables_to_plot(
    results: Sequence[ProfileResult],
    variables: Optional[Sequence[Hashable]],
    variable_type: str,
) -> List[Hashable]:
    available = {}
    for result in results:
        for variable, vtype in result.variable_types.items():
            available.setdefault(variable, vtype)
    if variables is not None:
        for variable in variables:
            if variable not in available:
                raise UnknownVariable(variable, available)
        candidates = list(variables)
    else:
        candidates = list(available)
    selected = [v for v in candidates if available[v] == variable_type]
    if not selected:
        raise EmptyProfileSet(f"No {variable_type} variables to plot")
    return selected


def _traces_for(result: ProfileResult, variable: Hashable, variable_type: str, colors: dict):
    """Yield (trace, color key) pairs for one variable of one result."""
    if isinstance(result, CeterisParibusProfiles):
        subset = result.profiles[result.profiles[VNAME] == variable]
        for (label, obs_id), group in subset.groupby([LABEL, IDS], sort=False):
            color = colors.setdefault(label, PALETTE[len(colors) % len(PALETTE)])
            x_values = group[variable].astype(object if variable_type == CATEGORICAL else float)
            if variable_type == NUMERICAL:
                yield go.Scatter(
                    x=x_values, y=group[YHAT], mode="lines",
                    line=dict(color=color, width=1),
                    name=str(label), legendgroup=str(label), opacity=0.6,
                    hovertemplate=f"<b>{variable}</b><br>id: {obs_id}<br>"
                                  "Value: %{x}<br>Prediction: %{y:.3f}<extra></extra>",
                ), label
            else:
                yield go.Bar(
                    x=x_values.astype(str), y=group[YHAT],
                    marker_color=color, name=str(label), legendgroup=str(label),
                    hovertemplate=f"<b>{variable}</b><br>id: {obs_id}<br>"
                                  "Level: %{x}<br>Prediction: %{y:.3f}<extra></extra>",
                ), label
    else:
        subset = result.table[result.table[VNAME] == variable]
        for label, group in subset.groupby(LABEL, sort=False):
            color = colors.setdefault(label, PALETTE[len(colors) % len(PALETTE)])
            if variable_type == NUMERICAL:
                yield go.Scatter(
                    x=group[X].astype(float), y=group[YHAT], mode="lines",
                    line=dict(color=color, width=2),
                    name=str(label), legendgroup=str(label),
                    hovertemplate=f"<b>{variable}</b><br>"
                                  "Value: %{x:.3f}<br>Average: %{y:.3f}<extra></extra>",
                ), label
            else:
                yield go.Bar(
                    x=group[X].astype(str), y=group[YHAT],
                    marker_color=color, name=str(label), legendgroup=str(label),
                    hovertemplate=f"<b>{variable}</b><br>"
                                  "Level: %{x}<br>Average: %{y:.3f}<extra></extra>",
                ), label


def plot_profiles(
    *results: ProfileResult,
    variables: Optional[Sequence[Hashable]] = None,
    variable_type: str = NUMERICAL,
    show_observations: bool = True,
    title: Optional[str] = None,
    n_cols: int = 3,
    save_path: Optional[str] = None,
) -> Union[go.Figure, str]:
    """Plot ceteris paribus or aggregated profiles, one panel per variable.

    Args:
        *results: CeterisParibusProfiles and/or AggregatedProfiles
        variables: Variables to plot. All of ``variable_type`` by default.
        variable_type: "numerical" (lines) or "categorical" (bars)
        show_observations: Mark the observations on ceteris paribus profiles
        title: Figure title
        n_cols: Maximum number of panels per row
        save_path: Optional path of an HTML export. If None, returns the figure.

    Returns:
        Interactive Plotly figure, or path to the saved file if save_path provided
    """
    if not results:
        raise EmptyProfileSet("Nothing to plot")
    if variable_type not in VARIABLE_TYPES:
        raise InvalidConfiguration(
            f"variable_type must be one of {VARIABLE_TYPES}, got '{variable_type}'"
        )

    selected = _variables_to_plot(results, variables, variable_type)

    # Determine grid layout
    n_cols = min(n_cols, len(selected))
    n_rows = (len(selected) + n_cols - 1) // n_cols

    fig = make_subplots(
        rows=n_rows,
        cols=n_cols,
        subplot_titles=[str(v) for v in selected],
        vertical_spacing=0.15,
        horizontal_spacing=0.08,
    )

    colors = {}
    legend_seen = set()
    for idx, variable in enumerate(selected):
        row = idx // n_cols + 1
        col = idx % n_cols + 1
        for result in results:
            for trace, label in _traces_for(result, variable, variable_type, colors):
                trace.showlegend = label not in legend_seen
                legend_seen.add(label)
                fig.add_trace(trace, row=row, col=col)

            if (
                show_observations
                and variable_type == NUMERICAL
                and isinstance(result, CeterisParibusProfiles)
            ):
                obs = result.observations
                fig.add_trace(
                    go.Scatter(
                        x=obs[variable].astype(float), y=obs[YHAT], mode="markers",
                        marker=dict(color=colors.get(result.label, "#371ea3"), size=7,
                                    line=dict(color="white", width=1)),
                        showlegend=False,
                        hovertemplate=f"<b>{variable}</b><br>"
                                      "Observed: %{x}<br>Prediction: %{y:.3f}<extra></extra>",
                    ),
                    row=row,
                    col=col,
                )
        fig.update_xaxes(title_text=str(variable), row=row, col=col)
        if col == 1:
            fig.update_yaxes(title_text="Prediction", row=row, col=col)

    if title is None:
        kind = results[0].type if isinstance(results[0], AggregatedProfiles) else "ceteris paribus"
        title = f"{kind.capitalize()} profiles" if kind != "partial" else "Partial dependence profiles"

    fig.update_layout(
        title=dict(text=title, x=0.5, xanchor="center", font=dict(size=16)),
        height=350 * n_rows,
        barmode="group",
        hovermode="closest",
        template="plotly_white",
    )

    if save_path:
        fig.write_html(save_path)
        return save_path

    return fig
