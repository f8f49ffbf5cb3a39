from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from .dom import Document, describe, parse_html
from .locator_generator import synthesize
from .models import DIALECTS
from .rendering import annotate
from .settings import CONFIG_DIR, PickerSettings, load_settings, save_settings, update_setting
from .verifier import resolve_with_mode

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def _build_logger(settings: PickerSettings, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("locatorpicker")
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.addHandler(stream_handler)
    if settings.log_to_file:
        try:
            CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(CONFIG_DIR / "locatorpicker.log", encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(file_handler)
        except OSError as exc:
            logger.warning("File logging disabled: %s", exc)
    return logger


def _load_document(path: str) -> Document:
    file_path = Path(path)
    markup = file_path.read_text(encoding="utf-8")
    return parse_html(markup, url=file_path.resolve().as_uri())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="locatorpicker",
        description="Synthesize and verify stable Playwright locators.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log tier decisions and matches.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    synth = subparsers.add_parser("synthesize", help="Locator for elements of an HTML file.")
    synth.add_argument("file", help="HTML file to read.")
    synth.add_argument("--select", required=True, help="CSS selector for the target element(s).")
    synth.add_argument("--dialect", choices=DIALECTS, help="Output dialect (default from config).")
    synth.add_argument("--all", action="store_true", help="Emit a locator for every selected element.")

    verify = subparsers.add_parser("verify", help="Count elements a locator or CSS selector matches.")
    verify.add_argument("file", help="HTML file to read.")
    verify.add_argument("expression", help="Rendered locator or CSS selector.")

    pick = subparsers.add_parser("pick", help="Pick elements in a live Chromium page.")
    pick.add_argument("url", help="Page to open.")
    pick.add_argument("--dialect", choices=DIALECTS, help="Output dialect (default from config).")
    pick.add_argument("--count", type=int, default=1, help="Number of elements to pick (default: 1).")
    pick.add_argument("--headless", action="store_true", help="Run Chromium without a window.")

    config = subparsers.add_parser("config", help="Show or change saved settings.")
    config_commands = config.add_subparsers(dest="config_command", required=True)
    config_commands.add_parser("show", help="Print the current settings.")
    config_set = config_commands.add_parser("set", help="Change one setting.")
    config_set.add_argument("key")
    config_set.add_argument("value")
    return parser


def _cmd_synthesize(args: argparse.Namespace, settings: PickerSettings, logger: logging.Logger) -> int:
    try:
        document = _load_document(args.file)
    except OSError as exc:
        print(f"Could not read {args.file}: {exc}", file=sys.stderr)
        return 2

    try:
        targets = document.select(args.select)
    except Exception as exc:
        print(f"Invalid selector {args.select!r}: {exc}", file=sys.stderr)
        return 2
    if not targets:
        print(f"No element matches {args.select!r}.", file=sys.stderr)
        return 1

    dialect = args.dialect or settings.dialect
    for target in targets if args.all else targets[:1]:
        result = synthesize(
            target,
            document,
            dialect,
            text_limit=settings.text_limit,
            ancestor_depth=settings.ancestor_depth,
        )
        logger.info("%s -> %s via %s", describe(target), result.severity, result.strategy)
        print(annotate(result.text, result.severity, dialect))
    return 0


def _cmd_verify(args: argparse.Namespace, settings: PickerSettings) -> int:
    try:
        document = _load_document(args.file)
    except OSError as exc:
        print(f"Could not read {args.file}: {exc}", file=sys.stderr)
        return 2

    result = resolve_with_mode(args.expression, document, text_limit=settings.text_limit)
    print(f"{result.count} match(es)")
    for node in result.nodes:
        print(f"  {describe(node)}")
    if result.count == 0 and result.message:
        print(result.message, file=sys.stderr)
    return 0 if result.count else 1


def _cmd_pick(args: argparse.Namespace, settings: PickerSettings) -> int:
    from .browser_manager import BrowserManager

    manager = BrowserManager(settings, on_status=lambda message: print(message, file=sys.stderr))
    try:
        if not manager.launch(args.url, headless=args.headless):
            return 1
        for _ in range(max(args.count, 1)):
            manager.arm(args.dialect)
            picked = manager.run(max_picks=1)
            if not picked:
                break
            print(picked[0].text)
    except KeyboardInterrupt:
        pass
    finally:
        manager.shutdown()
    return 0 if manager.results else 1


def _cmd_config(args: argparse.Namespace, settings: PickerSettings) -> int:
    if args.config_command == "show":
        for key in PickerSettings.__dataclass_fields__:
            print(f"{key} = {getattr(settings, key)}")
        return 0

    try:
        updated = update_setting(settings, args.key, args.value)
    except KeyError:
        print(f"Unknown setting: {args.key}", file=sys.stderr)
        return 2
    ok, error = save_settings(updated)
    if not ok:
        print(error, file=sys.stderr)
        return 1
    print(f"{args.key} = {getattr(updated, args.key)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "locatorpicker requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    args = build_parser().parse_args(argv)
    settings = load_settings()
    logger = _build_logger(settings, verbose=args.verbose)

    if args.command == "synthesize":
        return _cmd_synthesize(args, settings, logger)
    if args.command == "verify":
        return _cmd_verify(args, settings)
    if args.command == "pick":
        return _cmd_pick(args, settings)
    return _cmd_config(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
