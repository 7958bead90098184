import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from stakemap import (
    EntitySizer,
    LayoutBounds,
    LayoutParams,
    Size,
    StakeRecord,
    ViewportController,
    WeightedEntity,
    build_entities,
    compute_layout,
    get_layout_params,
    layout_bounds_for,
    layout_report,
    rank_entities,
)

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _parse_size(value: Optional[str]) -> Optional[Size]:
    if not value:
        return None
    parts = value.lower().split("x")
    if len(parts) != 2:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}")
    try:
        width, height = float(parts[0]), float(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}") from exc
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("viewport dimensions must be positive")
    return Size(width, height)


def _load_entities(document: Dict[str, Any]) -> List[WeightedEntity]:
    if "records" in document:
        records: List[StakeRecord] = []
        for index, raw in enumerate(document["records"]):
            try:
                records.append(StakeRecord.from_mapping(raw))
            except (KeyError, TypeError, ValueError, OverflowError) as exc:
                logger.warning("Skipping malformed record #%d: %s", index, exc)
        return build_entities(records)

    entities: List[WeightedEntity] = []
    for index, raw in enumerate(document.get("entities", [])):
        try:
            entities.append(
                WeightedEntity(id=str(raw["id"]), weight=raw.get("weight", 0.0), payload=raw.get("payload") or {})
            )
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("Skipping malformed entity #%d: %s", index, exc)
    return rank_entities(entities)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Lay out weighted stakers as non-overlapping markers")
    parser.add_argument("path", help="JSON file with 'entities' or staking 'records'")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        help="Relaxation iterations (default: from configuration)",
    )
    parser.add_argument(
        "--seeder",
        choices=["spiral", "grid"],
        help="Initial placement strategy",
    )
    parser.add_argument("--width", type=float, help="Layout width (default: sized from entities)")
    parser.add_argument("--height", type=float, help="Layout height (default: sized from entities)")
    parser.add_argument(
        "--viewport",
        type=_parse_size,
        help="Viewport WIDTHxHEIGHT; prints the fit-to-bounds view state",
    )
    parser.add_argument(
        "--plot-output-path",
        help="Write a PNG preview of the layout to the given path",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of a text summary",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    logger.info("Reading entities from %s", args.path)
    with open(args.path, encoding="utf-8") as fin:
        document = json.load(fin)
    entities = _load_entities(document)
    logger.info("Loaded %d entities", len(entities))

    params: LayoutParams = get_layout_params()
    if args.iterations is not None:
        params.iterations = args.iterations
    if args.seeder:
        params.seeder = args.seeder

    if args.width and args.height:
        bounds = LayoutBounds(args.width, args.height)
    else:
        bounds = layout_bounds_for(EntitySizer(params.sizing).sizes(e.weight for e in entities), params)

    positioned = compute_layout(entities, bounds, params)
    report = layout_report(positioned, bounds, params)

    view_state = None
    if args.viewport:
        controller = ViewportController(args.viewport)
        view_state = controller.fit_to_bounds(positioned)

    if args.json:
        payload: Dict[str, Any] = {
            "bounds": {"width": bounds.width, "height": bounds.height},
            "entities": [
                {"id": e.id, "size": e.size, "x": e.position.x, "y": e.position.y, "weight": e.weight}
                for e in positioned
            ],
            "report": {"max_overlap": report.max_overlap, "contained": report.contained},
        }
        if view_state is not None:
            payload["viewport"] = view_state.to_dict()
        print(json.dumps(payload, indent=2))
    else:
        print(f"Bounds: {bounds.width:.1f} x {bounds.height:.1f}")
        print(f"Entities: {len(positioned)}")
        for entity in positioned:
            print(
                f"  {entity.id}: size={entity.size:.2f} "
                f"at ({entity.position.x:.2f}, {entity.position.y:.2f})"
            )
        print(f"Max overlap: {report.max_overlap:.3e}")
        print(f"Contained: {report.contained}")
        if view_state is not None:
            print("Viewport:")
            print(f"  scale: {view_state.scale:.4f}")
            print(f"  offset: ({view_state.offset.x:.2f}, {view_state.offset.y:.2f})")

    if args.plot_output_path:
        from stakemap.plotting import render_layout_png

        output_path = Path(args.plot_output_path)
        logger.info("Writing layout preview to %s", output_path)
        render_layout_png(output_path, positioned, bounds, title=Path(args.path).name)
        print(f"Preview written to {output_path}")


if __name__ == "__main__":
    main(sys.argv[1:])
