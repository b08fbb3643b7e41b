"""Evaluate a viscoelastic model on time and frequency grids and write a CSV.

The model is either taken from the standard catalog (``--model``) or read
from a JSON definition (``--model-json``) validated before it is compiled.
Parameter values default to the catalog defaults (or the ``defaults`` block
of the JSON definition) and can be overridden with ``--param name=value``;
``--freeze name=value`` fixes parameters before binding.

Typical usage::

    python -m scripts.evaluate_model --model Maxwell --param eta=2 \
        --t-end 10 --points 101 --output artifacts/maxwell.csv

The output has one column per available modulus next to its grid: ``t``
followed by ``G``/``J``, then ``w`` followed by ``Gp``/``Gpp``. Moduli the
model does not define are omitted.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, ValidationError, field_validator

from src.rheology import catalog
from src.rheology.compiler import bind, check_constraint, freeze
from src.rheology.config import configure, get_config
from src.rheology.datagen import time_line
from src.rheology.model_class import ModelClass, define_model_class

LOGGER = logging.getLogger("evaluate_model")

_DEFAULT_OUTPUT = Path("artifacts") / "MODULI.csv"


class ModelDefinitionRow(BaseModel):
    name: str
    parameters: List[str]
    G: Optional[str] = None
    J: Optional[str] = None
    Gp: Optional[str] = None
    Gpp: Optional[str] = None
    constraint: str = "True"
    description: str = ""
    defaults: Dict[str, float] = {}

    @field_validator("name")
    def name_present(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("model name must not be empty")
        return value

    @field_validator("parameters")
    def parameters_present(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("a model definition needs at least one parameter")
        return [item.strip() for item in value]


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate a rheology model's moduli over a grid")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--model", type=str, help=f"Catalog model name ({', '.join(sorted(catalog.CATALOG))})")
    source.add_argument("--model-json", type=Path, help="JSON file holding a model definition")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Parameter value overriding the defaults (repeatable)",
    )
    parser.add_argument(
        "--freeze",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Fix a parameter before binding (repeatable)",
    )
    parser.add_argument("--t-end", type=float, default=10.0, help="End of the time grid (default: 10)")
    parser.add_argument("--omega-min", type=float, default=1e-2, help="Lowest angular frequency (default: 1e-2)")
    parser.add_argument("--omega-max", type=float, default=1e2, help="Highest angular frequency (default: 1e2)")
    parser.add_argument("--points", type=int, default=101, help="Samples per grid (default: 101)")
    parser.add_argument("--workers", type=int, default=None, help="Thread count for vectorised evaluation")
    parser.add_argument(
        "--precision",
        choices=("float64", "float32"),
        default=None,
        help="Override the numeric precision for this run",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=_DEFAULT_OUTPUT,
        help=f"Destination CSV (default: {_DEFAULT_OUTPUT})",
    )
    parser.add_argument("--verbose", action="store_true", help="Emit debug logging")
    return parser.parse_args(argv)


def _parse_assignments(items: Iterable[str], flag: str) -> Dict[str, float]:
    values: Dict[str, float] = {}
    for item in items:
        name, sep, raw = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"{flag} expects NAME=VALUE, got {item!r}")
        try:
            values[name.strip()] = float(raw)
        except ValueError:
            raise ValueError(f"{flag} {name.strip()} has a non-numeric value {raw!r}") from None
    return values


def _load_definition(path: Path) -> tuple[ModelClass, Dict[str, float]]:
    if not path.is_file():
        raise FileNotFoundError(f"Model definition {path} does not exist")
    payload = json.loads(path.read_text(encoding="utf8"))
    try:
        row = ModelDefinitionRow.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"{path} is not a valid model definition: {exc}") from exc
    model_class = define_model_class(
        row.name,
        row.parameters,
        G=row.G,
        J=row.J,
        Gp=row.Gp,
        Gpp=row.Gpp,
        constraint=row.constraint,
        description=row.description,
    )
    return model_class, dict(row.defaults)


def _resolve_model(args: argparse.Namespace) -> tuple[ModelClass, Dict[str, float]]:
    if args.model_json is not None:
        return _load_definition(args.model_json)
    return catalog.get_model_class(args.model), catalog.default_parameters(args.model)


def _build_output_frame(instance, times: np.ndarray, omegas: np.ndarray, workers: Optional[int]) -> pd.DataFrame:
    columns: Dict[str, np.ndarray] = {}
    if instance.has_modulus("G") or instance.has_modulus("J"):
        columns["t"] = times
        for modulus in ("G", "J"):
            if instance.has_modulus(modulus):
                columns[modulus] = instance.evaluate(modulus, times, workers=workers)
    if instance.has_modulus("Gp") or instance.has_modulus("Gpp"):
        columns["w"] = omegas
        for modulus in ("Gp", "Gpp"):
            if instance.has_modulus(modulus):
                columns[modulus] = instance.evaluate(modulus, omegas, workers=workers)
    if not columns:
        raise ValueError(f"{instance.name} defines no moduli to evaluate")
    return pd.DataFrame(columns)


def _write_output(path: Path, frame: pd.DataFrame) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False)


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.precision is not None:
            configure(precision=args.precision)
        if args.points < 2:
            raise ValueError("--points must be at least 2")
        if not 0 < args.omega_min < args.omega_max:
            raise ValueError("--omega-min must be positive and below --omega-max")
        LOGGER.info("Numeric config: %s", json.dumps(get_config().as_dict(), sort_keys=True))

        model_class, values = _resolve_model(args)
        frozen = _parse_assignments(args.freeze, "--freeze")
        values.update(_parse_assignments(args.param, "--param"))
        if frozen:
            model_class = freeze(model_class, frozen)
        values = {name: value for name, value in values.items() if name not in frozen}
        if not check_constraint(model_class, values):
            LOGGER.warning("Parameters %s violate the constraint of %s", values, model_class.name)
        instance = bind(model_class, values)
        LOGGER.info("Model: %s", instance.describe())

        times = time_line(0.0, args.t_end, step=args.t_end / (args.points - 1)).time
        omegas = np.logspace(np.log10(args.omega_min), np.log10(args.omega_max), args.points)
        frame = _build_output_frame(instance, times, omegas, args.workers)
        _write_output(args.output, frame)
        LOGGER.info("Wrote %d rows with columns %s to %s", len(frame), list(frame.columns), args.output)
        return 0
    except Exception as exc:  # pragma: no cover - exercised via CLI
        LOGGER.error("%s", exc)
        LOGGER.debug("Full exception", exc_info=True)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
