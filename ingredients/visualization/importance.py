"""Feature importance plots."""
from __future__ import annotations

import os
from typing import List, Optional, Union

import numpy as np
import pandas as pd
from matplotlib.figure import Figure
import plotly.graph_objects as go
from plotly.colors import qualitative
from plotly.subplots import make_subplots

from ..exceptions import EmptyProfileSet, InvalidConfiguration
from ..importance.feature_importance import FULL_MODEL, FeatureImportance

SPLITS = ("model", "feature")


def _with_boxplot_stats(fi: FeatureImportance, show_boxplots: bool) -> pd.DataFrame:
    table = fi.table
    means = table[table["permutation"] == 0].drop(columns="permutation")
    if not show_boxplots:
        return means
    rounds = table[table["permutation"] > 0]
    if rounds.empty:
        rounds = table
    stats = rounds.groupby("variable", sort=False)["dropout_loss"].agg(
        min="min",
        q1=lambda v: v.quantile(0.25),
        q3=lambda v: v.quantile(0.75),
        max="max",
    )
    return means.merge(stats, left_on="variable", right_index=True, how="left")


def feature_importance_plot_data(
    *fi: FeatureImportance,
    max_vars: Optional[int] = None,
    show_boxplots: bool = True,
    split: str = "model",
) -> pd.DataFrame:
    """Reshape feature importance results for plotting.

    Args:
        *fi: One or more FeatureImportance results
        max_vars: Keep only this many variables per model (split="model")
            or overall (split="feature")
        show_boxplots: Add min/q1/q3/max of the losses over permutations
        split: "model" (one panel per model) or "feature" (one per variable)

    Returns:
        DataFrame with ``variable``, ``label``, ``dropout_loss``,
        ``full_model`` and optionally ``min``, ``q1``, ``q3``, ``max``.
        Rows follow the panel order: variables by increasing mean loss for
        split="model", by decreasing mean loss for split="feature".
    """
    if split not in SPLITS:
        raise InvalidConfiguration(f"split must be one of {SPLITS}, got '{split}'")
    if not fi:
        raise EmptyProfileSet("No feature importance results to plot")

    df = pd.concat([_with_boxplot_stats(x, show_boxplots) for x in fi], ignore_index=True)

    full = df[df["variable"] == FULL_MODEL][["label", "dropout_loss"]]
    full = full.rename(columns={"dropout_loss": "full_model"})
    df = df.merge(full, on="label", how="left", sort=False)

    # Remove helper rows
    df = df[~df["variable"].astype(str).str.startswith("_")]

    order = df.groupby("variable")["dropout_loss"].mean().sort_values()

    if split == "model":
        if max_vars is not None:
            df = (
                df.sort_values("dropout_loss")
                .groupby("label", sort=False, group_keys=False)
                .tail(max_vars)
            )
        rank = {name: i for i, name in enumerate(order.index)}
    else:
        keep = list(order.index[::-1])
        if max_vars is not None:
            keep = keep[:max_vars]
        df = df[df["variable"].isin(keep)]
        rank = {name: i for i, name in enumerate(keep)}

    df = df.assign(_rank=df["variable"].map(rank))
    df = df.sort_values(["_rank", "label"], kind="stable").drop(columns="_rank")
    return df.reset_index(drop=True)


def _x_range(df: pd.DataFrame, margin: float) -> List[float]:
    lows = [df["dropout_loss"].min(), df["full_model"].min()]
    highs = [df["dropout_loss"].max()]
    if "min" in df.columns:
        lows.append(df["min"].min())
        highs.append(df["max"].max())
    xmin, xmax = float(np.nanmin(lows)), float(np.nanmax(highs))
    xmargin = abs(xmax - xmin) * margin
    return [xmin - xmargin, xmax + xmargin]


def plot_feature_importance(
    *fi: FeatureImportance,
    max_vars: Optional[int] = None,
    show_boxplots: bool = True,
    bar_width: int = 12,
    split: str = "model",
    margin: float = 0.15,
    chart_title: str = "Feature importance",
    save_path: Optional[str] = None,
) -> Union[go.Figure, str]:
    """Plot drop-out losses as bars starting at the full model loss.

    Args:
        *fi: One or more FeatureImportance results
        max_vars: Maximum number of variables shown
        show_boxplots: Overlay the spread of losses over permutations
        bar_width: Bar thickness in pixels
        split: "model" for one panel per model, "feature" for one per variable
        margin: Extension of the x axis as a fraction of the data range
        chart_title: Figure title
        save_path: Optional path of an HTML export. If None, returns the figure.

    Returns:
        Interactive Plotly figure, or path to the saved file if save_path provided
    """
    df = feature_importance_plot_data(
        *fi, max_vars=max_vars, show_boxplots=show_boxplots, split=split
    )
    x_range = _x_range(df, margin)

    panel_column = "label" if split == "model" else "variable"
    bar_column = "variable" if split == "model" else "label"
    panels = list(pd.unique(df[panel_column]))
    labels = list(pd.unique(df["label"]))
    colors = {label: qualitative.Plotly[i % len(qualitative.Plotly)] for i, label in enumerate(labels)}

    fig = make_subplots(
        rows=len(panels),
        cols=1,
        subplot_titles=[str(p) for p in panels],
        shared_xaxes=True,
        vertical_spacing=0.3 / max(len(panels), 1),
    )

    heights = []
    for idx, panel in enumerate(panels, start=1):
        part = df[df[panel_column] == panel]
        heights.append(len(part))
        for _, row in part.iterrows():
            fig.add_trace(
                go.Bar(
                    x=[row["dropout_loss"] - row["full_model"]],
                    y=[str(row[bar_column])],
                    base=[row["full_model"]],
                    orientation="h",
                    width=0.6,
                    marker_color=colors[row["label"]],
                    name=str(row["label"]),
                    legendgroup=str(row["label"]),
                    showlegend=False,
                    hovertemplate=(
                        f"<b>{row['variable']}</b><br>Model: {row['label']}<br>"
                        f"Loss after permutation: {row['dropout_loss']:.4f}<br>"
                        f"Full model loss: {row['full_model']:.4f}<extra></extra>"
                    ),
                ),
                row=idx,
                col=1,
            )
            if show_boxplots and "q1" in part.columns:
                fig.add_trace(
                    go.Box(
                        y=[str(row[bar_column])],
                        lowerfence=[row["min"]],
                        q1=[row["q1"]],
                        median=[row["dropout_loss"]],
                        q3=[row["q3"]],
                        upperfence=[row["max"]],
                        orientation="h",
                        marker_color="#371ea3",
                        line=dict(width=1),
                        showlegend=False,
                        hoverinfo="skip",
                    ),
                    row=idx,
                    col=1,
                )
        if split == "model":
            fig.add_vline(x=part["full_model"].iloc[0], line_dash="dot", line_color="gray", row=idx, col=1)

    fig.update_xaxes(range=x_range, title_text="Loss after permutation", row=len(panels), col=1)
    height = sum(heights) * (bar_width * 2.5) + 120 * len(panels)
    fig.update_layout(
        title=dict(text=chart_title, x=0.5, xanchor="center", font=dict(size=16)),
        height=max(int(height), 300),
        barmode="overlay",
        template="plotly_white",
    )

    if save_path:
        fig.write_html(save_path)
        return save_path

    return fig


def plot_feature_importance_static(
    fi: FeatureImportance,
    path: str,
    max_vars: int = 20,
) -> str:
    """Save a static bar chart of mean drop-out losses.

    Args:
        fi: FeatureImportance result
        path: Output image path
        max_vars: Maximum variables to display

    Returns:
        Path to saved figure
    """
    means = fi.mean_losses().sort_values(ascending=False)[:max_vars]
    full_model = float(fi.table.loc[
        (fi.table["variable"] == FULL_MODEL) & (fi.table["permutation"] == 0), "dropout_loss"
    ].iloc[0])

    fig = Figure(figsize=(10, 8))
    ax = fig.subplots()
    ax.barh(
        range(len(means)),
        means.values - full_model,
        left=full_model,
        alpha=0.7,
    )
    ax.axvline(full_model, color="gray", linestyle=":")
    ax.set_yticks(range(len(means)))
    ax.set_yticklabels([str(name) for name in means.index])
    ax.set_xlabel("Loss after permutation", fontsize=12)
    ax.set_ylabel("Feature", fontsize=12)
    ax.set_title(f"Feature importance: {fi.label}", fontsize=14)
    ax.invert_yaxis()
    fig.tight_layout()

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(path, dpi=150)

    return path
