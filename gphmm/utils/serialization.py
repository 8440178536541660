"""Serialization utilities for GPHMM parameters and training histories (load and save)."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import yaml

from gphmm.errors import InvalidParameterError
from gphmm.types.parameters import HMM_STATES, NUCLEOTIDES, ParameterSet

PathLike = Union[str, Path]

# Artifact key -> ParameterSet field
ARTIFACT_KEYS: Dict[str, str] = {
    "qR": "q_r",
    "qX": "q_x",
    "qY": "q_y",
    "pp": "pp",
    "deltaX": "delta_x",
    "deltaY": "delta_y",
    "transitions": "transitions",
}


def _convert_values(value: Any, precision: int | None) -> Any:
    """
    Recursively convert arrays/dicts/lists to plain Python and optionally round floats.
    """
    if isinstance(value, np.ndarray):
        return _convert_values(value.tolist(), precision)
    if isinstance(value, dict):
        return {key: _convert_values(val, precision) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_convert_values(item, precision) for item in value]
    if isinstance(value, (float, np.floating)):
        value = float(value)
        return round(value, precision) if precision is not None else value
    return value


def _labeled(values: Sequence[float], labels: Sequence[str]) -> Dict[str, float]:
    return {label: value for label, value in zip(labels, values)}


def _unlabeled(mapping: Mapping[str, Any], labels: Sequence[str], context: str) -> List[Any]:
    missing = [label for label in labels if label not in mapping]
    if missing:
        raise InvalidParameterError(f"{context} missing keys: {missing}", context)
    unexpected = [key for key in mapping if key not in labels]
    if unexpected:
        raise InvalidParameterError(f"{context} has unexpected keys: {unexpected}", context)
    return [mapping[label] for label in labels]


def parameters_to_dict(
    params: ParameterSet, float_precision: int | None = None
) -> Dict[str, Any]:
    """
    Convert a ParameterSet into a labelled plain dictionary suitable for YAML.

    Floats are left unrounded by default so that a save/load round trip is exact.
    """
    payload = {
        "qR": _labeled(params.q_r.tolist(), NUCLEOTIDES),
        "qX": _labeled(params.q_x.tolist(), NUCLEOTIDES),
        "qY": _labeled(params.q_y.tolist(), NUCLEOTIDES),
        "pp": {
            ref: _labeled(row, NUCLEOTIDES)
            for ref, row in zip(NUCLEOTIDES, params.pp.tolist())
        },
        "deltaX": {"intercept": params.delta_x[0], "slope": params.delta_x[1]},
        "deltaY": {"intercept": params.delta_y[0], "slope": params.delta_y[1]},
        "transitions": {
            state: _labeled(row, HMM_STATES)
            for state, row in zip(HMM_STATES, params.transitions.tolist())
        },
    }
    return _convert_values(payload, float_precision)


def parameters_from_dict(payload: Mapping[str, Any]) -> ParameterSet:
    """Rebuild a ParameterSet from the labelled dictionary layout."""
    params_dict = payload.get("parameters", payload)
    missing = [key for key in ARTIFACT_KEYS if key not in params_dict]
    if missing:
        raise InvalidParameterError(f"parameter artifact missing keys: {missing}")

    pp = _unlabeled(params_dict["pp"], NUCLEOTIDES, "pp")
    transitions = _unlabeled(params_dict["transitions"], HMM_STATES, "transitions")
    return ParameterSet(
        q_r=_unlabeled(params_dict["qR"], NUCLEOTIDES, "qR"),
        q_x=_unlabeled(params_dict["qX"], NUCLEOTIDES, "qX"),
        q_y=_unlabeled(params_dict["qY"], NUCLEOTIDES, "qY"),
        pp=[_unlabeled(row, NUCLEOTIDES, f"pp[{base}]") for base, row in zip(NUCLEOTIDES, pp)],
        delta_x=_unlabeled(params_dict["deltaX"], ("intercept", "slope"), "deltaX"),
        delta_y=_unlabeled(params_dict["deltaY"], ("intercept", "slope"), "deltaY"),
        transitions=[
            _unlabeled(row, HMM_STATES, f"transitions[{state}]")
            for state, row in zip(HMM_STATES, transitions)
        ],
    )


def save_parameters(
    params: ParameterSet,
    yaml_path: PathLike,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Path:
    """Write a ParameterSet (and optional metadata) to a YAML file."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)
    payload: Dict[str, Any] = {}
    if metadata:
        payload["metadata"] = _convert_values(dict(metadata), None)
    payload["parameters"] = parameters_to_dict(params)
    with yaml_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(payload, handle, sort_keys=False)
    return yaml_path


def load_parameters(yaml_path: PathLike) -> ParameterSet:
    """Load a ParameterSet from a YAML (or JSON) file."""
    with Path(yaml_path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    if not isinstance(payload, dict):
        raise InvalidParameterError(f"{yaml_path} does not hold a parameter mapping")
    return parameters_from_dict(payload)


def save_log_likelihoods(values: Sequence[float], yaml_path: PathLike) -> Path:
    """Write the per-iteration log-likelihood history, index 0 = first iteration."""
    yaml_path = Path(yaml_path)
    yaml_path.parent.mkdir(parents=True, exist_ok=True)
    with yaml_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump({"log_likelihoods": [float(v) for v in values]}, handle)
    return yaml_path


def load_log_likelihoods(yaml_path: PathLike) -> List[float]:
    with Path(yaml_path).open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    return [float(v) for v in payload["log_likelihoods"]]


__all__ = [
    "parameters_to_dict",
    "parameters_from_dict",
    "save_parameters",
    "load_parameters",
    "save_log_likelihoods",
    "load_log_likelihoods",
]
