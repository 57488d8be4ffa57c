import argparse
import json
import mimetypes
import sys
from pathlib import Path

from app.config.settings import Settings
from app.logging.logger import Log
from app.processor.dispatcher import build_dispatcher
from app.processor.models import InputDocument
from app.storage.sweeper import ArtifactSweeper


def _read_input(path: Path) -> InputDocument:
    media_type, _ = mimetypes.guess_type(path.name)
    return InputDocument(
        data=path.read_bytes(),
        media_type=media_type or "application/octet-stream",
        filename=path.name,
    )


def _parse_params(pairs: list[str]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise SystemExit(f"Invalid --param '{pair}', expected key=value")
        params[key.strip()] = value
    return params


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one document operation.")
    parser.add_argument("operation", help="e.g. compress, merge, split, validate")
    parser.add_argument("files", nargs="+", type=Path, help="input files, in order")
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="operation parameter, repeatable (e.g. pages=1-3,5)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point: configure -> build dispatcher -> start sweeper -> dispatch one request."""
    args = _build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)

    dispatcher = build_dispatcher(settings)
    dispatcher.warm_up()
    sweeper = ArtifactSweeper(
        dispatcher.store,
        ttl_seconds=settings.artifact_ttl_seconds,
        interval_seconds=settings.sweep_interval_seconds,
    )
    sweeper.start()
    try:
        inputs = [_read_input(path) for path in args.files]
        status, payload = dispatcher.respond(args.operation, inputs, _parse_params(args.param))
    finally:
        sweeper.stop()

    print(json.dumps(payload, indent=2))
    return 0 if status == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
