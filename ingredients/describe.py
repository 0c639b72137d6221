"""Natural language descriptions of explanations.

:func:`describe` turns ceteris paribus profiles, aggregated profiles and
feature importance results into short English paragraphs.
"""
from __future__ import annotations

from typing import Any, Hashable, List, Optional, Sequence

import numpy as np

from .exceptions import InvalidConfiguration, UnknownVariable
from .importance.feature_importance import FULL_MODEL, FeatureImportance
from .profiles.aggregation import X, AggregatedProfiles
from .profiles.ceteris_paribus import CeterisParibusProfiles, LABEL, VNAME, YHAT
from .profiles.splits import NUMERICAL


def _fmt(value: Any) -> str:
    if isinstance(value, (float, np.floating)):
        return f"{value:.3g}"
    return str(value)


def _with_number(text: str, value: float, display_numbers: bool) -> str:
    return f"{text} ({_fmt(value)})" if display_numbers else text


def breakpoint_index(y: np.ndarray) -> int:
    """Position that best splits a curve into a low and a high part.

    It maximises the absolute cumulative deviation from the curve's mean.
    """
    y = np.asarray(y, dtype=float)
    if len(y) < 2:
        return 0
    deviations = np.abs(np.cumsum(y - np.nanmean(y))[:-1])
    return int(np.nanargmax(deviations))


def _describe_numeric_curve(
    variable: Hashable,
    x: np.ndarray,
    y: np.ndarray,
    prediction_label: str,
    display_numbers: bool,
    responses: str,
) -> str:
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    high, low = int(np.nanargmax(y)), int(np.nanargmin(y))
    cut = breakpoint_index(y)

    text = (
        f"The highest {prediction_label} occurs for ({variable} = {_fmt(x[high])})"
        + (f" ({_fmt(y[high])})" if display_numbers else "")
        + f", while the lowest for ({variable} = {_fmt(x[low])})"
        + (f" ({_fmt(y[low])})" if display_numbers else "")
        + "."
    )
    if len(x) > 1:
        before, after = np.nanmean(y[: cut + 1]), np.nanmean(y[cut + 1:])
        direction = "higher" if after > before else "lower"
        text += (
            f" Breakpoint is identified at ({variable} = {_fmt(x[cut])})."
            f" {responses} are *{direction}* for variable values *higher* than breakpoint."
        )
    return text


def _is_flat(y: np.ndarray, largest_range: float, threshold: float) -> bool:
    spread = float(np.nanmax(y) - np.nanmin(y))
    return largest_range == 0 or spread < threshold * largest_range


def _check_variables(variables: Optional[Sequence[Hashable]], available: Sequence[Hashable]) -> List[Hashable]:
    if variables is None:
        return list(available)
    for variable in variables:
        if variable not in available:
            raise UnknownVariable(variable, available)
    return list(variables)


def describe_ceteris_paribus(
    cp: CeterisParibusProfiles,
    nonsignificance_treshold: float = 0.15,
    display_numbers: bool = False,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
) -> str:
    """Describe the ceteris paribus profiles of a single observation."""
    if len(cp.observations) != 1:
        raise InvalidConfiguration(
            f"describe() needs profiles of exactly one observation, got {len(cp.observations)}"
        )
    prediction_label = label or "prediction"
    selected = _check_variables(variables, cp.variables)
    observation = cp.observations.iloc[0]
    current = float(observation[YHAT])

    curves = {
        v: cp.profiles[cp.profiles[VNAME] == v]
        for v in selected
    }
    largest_range = max(
        (float(c[YHAT].max() - c[YHAT].min()) for c in curves.values() if not c.empty),
        default=0.0,
    )

    paragraphs = [
        f"For the selected instance, {prediction_label} estimated by {cp.label} is equal to {_fmt(current)}."
    ]
    for variable, curve in curves.items():
        if curve.empty:
            continue
        y = curve[YHAT].to_numpy(dtype=float)
        if _is_flat(y, largest_range, nonsignificance_treshold):
            paragraphs.append(
                f"The {prediction_label} is almost insensitive to changes of {variable}."
            )
            continue

        if cp.variable_types[variable] == NUMERICAL:
            paragraphs.append(_describe_numeric_curve(
                variable, curve[variable].to_numpy(dtype=float), y,
                prediction_label, display_numbers, "Model responses",
            ))
        else:
            levels = curve[variable].astype(object).to_numpy()
            high, low = int(np.argmax(y)), int(np.argmin(y))
            text = f"The current value of {variable} is \"{observation[variable]}\"."
            if y[high] > current:
                text += " " + _with_number(
                    f"Model's {prediction_label} would increase the most if {variable} changed to \"{levels[high]}\"",
                    y[high], display_numbers,
                ) + "."
            if y[low] < current:
                text += " " + _with_number(
                    f"It would decrease the most if {variable} changed to \"{levels[low]}\"",
                    y[low], display_numbers,
                ) + "."
            paragraphs.append(text)

    return "\n".join(paragraphs)


def describe_aggregated_profiles(
    agg: AggregatedProfiles,
    nonsignificance_treshold: float = 0.15,
    display_numbers: bool = False,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
) -> str:
    """Describe aggregated profiles, one paragraph per model."""
    prediction_label = label or "prediction"
    selected = _check_variables(variables, agg.variables)
    table = agg.table
    largest_range = float(
        table.groupby([LABEL, VNAME])[YHAT].agg(lambda v: v.max() - v.min()).max()
    )

    paragraphs = []
    for model_label in agg.labels:
        rows = table[table[LABEL] == model_label]
        observed = agg.observations
        if LABEL in observed.columns and (observed[LABEL] == model_label).any():
            mean = observed.loc[observed[LABEL] == model_label, YHAT].mean()
        else:
            mean = rows[YHAT].mean()

        sentences = [f"{model_label}'s mean {prediction_label} is equal to {_fmt(float(mean))}."]
        for variable in selected:
            curve = rows[rows[VNAME] == variable]
            if curve.empty:
                continue
            y = curve[YHAT].to_numpy(dtype=float)
            if _is_flat(y, largest_range, nonsignificance_treshold):
                sentences.append(
                    f"The average {prediction_label} is almost constant as {variable} changes."
                )
            elif agg.variable_types.get(variable, agg.variable_type) == NUMERICAL:
                sentences.append(_describe_numeric_curve(
                    variable, curve[X].to_numpy(dtype=float), y,
                    prediction_label, display_numbers, "Average model responses",
                ))
            else:
                levels = curve[X].to_numpy()
                high, low = int(np.argmax(y)), int(np.argmin(y))
                sentences.append(_with_number(
                    f"The largest difference in average {prediction_label} for {variable} "
                    f"is between \"{levels[high]}\" and \"{levels[low]}\"",
                    y[high] - y[low], display_numbers,
                ) + ".")
        paragraphs.append(" ".join(sentences))

    return "\n".join(paragraphs)


def describe_feature_importance(
    fi: FeatureImportance,
    nonsignificance_treshold: float = 0.15,
    display_numbers: bool = False,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
) -> str:
    """Describe which variables matter most for a model."""
    prediction_label = label or "prediction"
    means = fi.mean_losses()
    selected = _check_variables(variables, list(means.index))
    means = means[selected].sort_values(ascending=False)

    full = float(fi.table.loc[
        (fi.table["variable"] == FULL_MODEL) & (fi.table["permutation"] == 0), "dropout_loss"
    ].iloc[0])
    importance = means - full
    top = importance.max() if len(importance) else 0.0
    important = importance[importance > nonsignificance_treshold * top] if top > 0 else importance.iloc[:0]

    text = (
        f"The number of important variables for {fi.label}'s {prediction_label} "
        f"is {len(important)} out of {len(means)}."
    )
    if len(important):
        names = [
            _with_number(str(name), means[name], display_numbers)
            for name in important.index[:3]
        ]
        noun = "Variable" if len(names) == 1 else "Variables"
        verb = "has" if len(names) == 1 else "have"
        text += f" {noun} {', '.join(names)} {verb} the highest importance."
    return text


def describe(
    x: Any,
    nonsignificance_treshold: float = 0.15,
    display_numbers: bool = False,
    label: Optional[str] = None,
    variables: Optional[Sequence[Hashable]] = None,
) -> str:
    """Describe an explanation in natural language.

    Args:
        x: CeterisParibusProfiles, AggregatedProfiles or FeatureImportance
        nonsignificance_treshold: Changes smaller than this share of the
            largest change are reported as insignificant
        display_numbers: Add rounded values to the text
        label: Wording used for the prediction, e.g. "the probability of survival"
        variables: Describe only these variables

    Returns:
        Description text
    """
    kwargs = dict(
        nonsignificance_treshold=nonsignificance_treshold,
        display_numbers=display_numbers,
        label=label,
        variables=variables,
    )
    if isinstance(x, CeterisParibusProfiles):
        return describe_ceteris_paribus(x, **kwargs)
    if isinstance(x, AggregatedProfiles):
        return describe_aggregated_profiles(x, **kwargs)
    if isinstance(x, FeatureImportance):
        return describe_feature_importance(x, **kwargs)
    raise InvalidConfiguration(f"Cannot describe an object of type {type(x).__name__}")
