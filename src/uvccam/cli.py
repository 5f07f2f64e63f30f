"""Command line entry point that runs one capture session on a Qt event loop."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Dict, Optional, Sequence, Tuple

from PySide6.QtCore import QCoreApplication, QTimer

from .compat import EMULATE_RASPICAM
from .config import PresetRepository
from .events import CaptureEvent, EventKind
from .session import CaptureSession, open_session

logger = logging.getLogger(__name__)

# Lets Python signal handlers run while Qt owns the main thread.
SIGNAL_POLL_MS = 200


def parse_flag(text: str) -> Tuple[str, object]:
    """Parse ``name`` or ``name=value``; a bare name is a boolean flag."""

    name, sep, value = text.partition("=")
    if not name:
        raise argparse.ArgumentTypeError(f"invalid flag: {text!r}")
    return name, (value if sep else True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Capture photos or timelapses with uvccapture.")
    parser.add_argument("--mode", choices=["photo", "timelapse", "video"], help="Capture mode.")
    parser.add_argument("--output", help="Target file path, e.g. ./photo/image.jpg")
    parser.add_argument("--width", type=int, help="Capture width (default 640).")
    parser.add_argument("--height", type=int, help="Capture height (default 480).")
    parser.add_argument("--timeout", type=int, help="Timeout in ms, capped at 9999.")
    parser.add_argument("--timelapse", type=int, help="Timelapse frequency in ms.")
    parser.add_argument("--encoding", help="Image encoding passed through to uvccapture.")
    parser.add_argument(
        "--flag",
        dest="flags",
        action="append",
        type=parse_flag,
        default=[],
        metavar="NAME[=VALUE]",
        help="Extra uvccapture flag. May be repeated.",
    )
    parser.add_argument(
        "--raspicam",
        action="store_true",
        help="Interpret option names using the raspistill vocabulary.",
    )
    parser.add_argument("--preset", help="Load options from a saved preset first.")
    parser.add_argument("--save-preset", metavar="NAME", help="Save the resulting options as a preset.")
    parser.add_argument(
        "--log-level",
        default="warning",
        choices=["debug", "info", "warning", "error"],
        help="Logging verbosity.",
    )
    return parser


def collect_options(args: argparse.Namespace, repository: PresetRepository) -> Dict[str, object]:
    options: Dict[str, object] = {}
    if args.preset:
        options.update(repository.get_preset(args.preset))
    for name in ("mode", "output", "width", "height", "timeout", "timelapse", "encoding"):
        value = getattr(args, name)
        if value is not None:
            options[name] = value
    for name, value in args.flags:
        options[name] = value
    if args.raspicam:
        options[EMULATE_RASPICAM] = "yes"
    return options


def describe(event: CaptureEvent) -> str:
    if event.kind == EventKind.READ.value:
        return f"image captured with filename: {event.filename}"
    if event.kind == EventKind.EXIT.value:
        if event.error is not None:
            return f"capture process failed: {event.error}"
        return f"capture process exited at {event.timestamp:%H:%M:%S.%f}"
    if event.error is not None:
        return f"{event.kind}: {event.error}"
    return f"{event.kind} at {event.timestamp:%H:%M:%S.%f}"


def run_session(session: CaptureSession, app: QCoreApplication) -> int:
    def report(event: CaptureEvent) -> None:
        print(describe(event), flush=True)

    status: Dict[str, int] = {}

    def finish(event: CaptureEvent) -> None:
        report(event)
        status["code"] = 0 if event.ok else 1
        app.exit(status["code"])

    for kind in (EventKind.START, EventKind.READ):
        session.on(kind, report)
    session.on(EventKind.EXIT, finish)
    session.on(EventKind.STOP, finish)

    if not session.start():
        return 1
    if "code" in status:
        return status["code"]

    previous = signal.signal(signal.SIGINT, lambda *_: session.stop())
    timer = QTimer()
    timer.timeout.connect(lambda: None)
    timer.start(SIGNAL_POLL_MS)
    try:
        return app.exec()
    finally:
        timer.stop()
        signal.signal(signal.SIGINT, previous)


def main(argv: Optional[Sequence[str]] = None, repository: Optional[PresetRepository] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repository = repository or PresetRepository()
    try:
        options = collect_options(args, repository)
    except (KeyError, ValueError) as exc:
        parser.error(str(exc))

    if args.save_preset:
        repository.save_preset(args.save_preset, options)
        logger.info("Saved preset %s", args.save_preset)

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    session = open_session(options)
    if session is None:
        parser.error("invalid capture options (--mode and --output are required)")

    return run_session(session, app)


if __name__ == "__main__":  # pragma: no cover - CLI convenience
    sys.exit(main())


__all__ = ["build_parser", "collect_options", "describe", "main", "parse_flag", "run_session"]
