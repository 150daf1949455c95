"""CLI for polar contour extraction over slice archives."""

import json
import os
import sys
from pathlib import Path
from typing import Any

import click
from loguru import logger
from pydantic import ValidationError

from polar_contour import config
from polar_contour.batch import SliceOutcome, segment_series
from polar_contour.models import ContourConfig
from polar_contour.nodes.polar_dp import render_overlay
from polar_contour.utils import cv_utils
from polar_contour.utils.detector import load_factory


def _parse_overrides(pairs: tuple[str, ...]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--set")
        try:
            overrides[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            overrides[key.strip()] = raw
    return overrides


def _build_config(config_file: Path | None, overrides: dict[str, Any]) -> ContourConfig:
    if config_file is not None:
        return ContourConfig.from_file(config_file, **overrides)
    return ContourConfig(**overrides)


def _outcome_payload(outcome: SliceOutcome) -> dict[str, Any]:
    state = outcome.state
    errors = list(state.errors) if state else []
    if outcome.error is not None:
        errors.append(outcome.error)
    return {
        "path": outcome.path,
        "measurements": (
            state.measurements.model_dump(mode="json")
            if state and state.measurements
            else None
        ),
        "contour": state.contour.model_dump(mode="json") if state and state.contour else None,
        "errors": [e.model_dump(mode="json") for e in errors],
    }


def _output_names(slices: tuple[Path, ...]) -> list[str]:
    """File stems for per-slice outputs.

    Plain stems when they are unique, otherwise the path relative to the
    inputs' common directory joined with ``__``.
    """
    stems = [p.stem for p in slices]
    if len(set(stems)) == len(stems):
        return stems
    resolved = [p.resolve() for p in slices]
    root = Path(os.path.commonpath([p.parent for p in resolved]))
    return ["__".join(p.with_suffix("").relative_to(root).parts) for p in resolved]


def _write_overlay(outcome: SliceOutcome, overlay_dir: Path, name: str) -> None:
    state = outcome.state
    if state is None or state.contour is None:
        return
    image = render_overlay(state.record, state.contour, state.polar_prob)
    saved = cv_utils.save_image(image, overlay_dir / f"{name}.png")
    if not isinstance(saved, Path):
        click.echo(f"  Warning: {saved.message}", err=True)


@click.command()
@click.argument("slices", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory for per-slice JSON results",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    help="JSON file with contour options",
)
@click.option("--set", "overrides", multiple=True, help="Override one option, e.g. --set gap=5")
@click.option(
    "--max-workers",
    type=int,
    default=config.DEFAULT_MAX_WORKERS,
    show_default=True,
    help="Worker processes (1 runs inline)",
)
@click.option("--detector", "detector_name", help="Detector model name for slices without a map")
@click.option("--detector-factory", help="module:callable building a detector from its name")
@click.option("--overlay-dir", type=click.Path(path_type=Path), help="Write review overlays here")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def main(
    slices: tuple[Path, ...],
    output_dir: Path,
    config_file: Path | None,
    overrides: tuple[str, ...],
    max_workers: int,
    detector_name: str | None,
    detector_factory: str | None,
    overlay_dir: Path | None,
    verbose: bool,
) -> None:
    """Extract polar DP contours and measurements from slice archives."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")

    if not slices:
        click.echo("Error: No input slices provided", err=True)
        sys.exit(1)
    if max_workers < 1:
        click.echo("Error: --max-workers must be >= 1", err=True)
        sys.exit(1)

    try:
        contour_config = _build_config(config_file, _parse_overrides(overrides))
    except (ValidationError, ValueError) as e:
        click.echo(f"Error: invalid contour options: {e}", err=True)
        sys.exit(1)

    factory = None
    if detector_factory:
        try:
            factory = load_factory(detector_factory)
        except (ImportError, AttributeError, ValueError) as e:
            click.echo(f"Error: cannot load detector factory: {e}", err=True)
            sys.exit(1)

    output_dir.mkdir(parents=True, exist_ok=True)
    names = _output_names(slices)
    counts = {"success": 0, "failed": 0}

    def _report(outcome: SliceOutcome) -> None:
        name = names[outcome.index]
        out_path = output_dir / f"{name}.json"
        out_path.write_text(json.dumps(_outcome_payload(outcome), indent=2))
        if overlay_dir is not None:
            _write_overlay(outcome, overlay_dir, name)

        if outcome.failed:
            counts["failed"] += 1
            click.echo(f"Error processing {outcome.path}:", err=True)
        else:
            counts["success"] += 1
            if verbose:
                area = outcome.state.measurements.area if outcome.state.measurements else 0.0
                click.echo(f"  Output: {out_path} (area {area:.1f})")
        errors = list(outcome.state.errors) if outcome.state else []
        if outcome.error is not None:
            errors.append(outcome.error)
        for e in errors:
            click.echo(f"  [{e.stage.value}] {e.message}", err=True)

    segment_series(
        list(slices),
        contour_config,
        max_workers=max_workers,
        detector_name=detector_name,
        detector_factory=factory,
        on_result=_report,
    )

    click.echo(
        f"Processed {counts['success'] + counts['failed']} slices: "
        f"{counts['success']} success, {counts['failed']} failed"
    )
    if counts["failed"] > 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
