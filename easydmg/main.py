import argparse
import sys
from dataclasses import replace
from pathlib import Path

from easydmg.__version__ import __version__
from easydmg.config import settings
from easydmg.domain import FeedbackMode, OutcomeKind, ReplaceDecision
from easydmg.logging import LoggerFactory, setup_logging
from easydmg.services.confirmation import FixedConfirmationGate, PromptConfirmationGate
from easydmg.services.feedback import OsascriptNotifier
from easydmg.services.installer import APPLICATIONS_DIR, Installer


EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_MANUAL_FALLBACK = 2

DISK_IMAGE_SUFFIX = ".dmg"

_EXIT_CODES = {
    OutcomeKind.SUCCESS: EXIT_SUCCESS,
    OutcomeKind.MANUAL_FALLBACK: EXIT_MANUAL_FALLBACK,
    OutcomeKind.ERROR: EXIT_ERROR,
}
# Higher wins when several images are processed in one run.
_SEVERITY = {EXIT_SUCCESS: 0, EXIT_MANUAL_FALLBACK: 1, EXIT_ERROR: 2}

_BOOL_KEYS = ("auto_trash_dmg", "reveal_in_finder")
_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="easydmg",
        description="Install apps from disk images without dragging and dropping",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Enable very verbose trace output")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    subparsers = parser.add_subparsers(dest="command")

    install = subparsers.add_parser("install", help="Install the app inside one or more .dmg files")
    install.add_argument("images", nargs="+", type=Path, help="Disk image(s) to install from")
    decision = install.add_mutually_exclusive_group()
    decision.add_argument(
        "--replace", action="store_true", help="Replace an existing app without asking"
    )
    decision.add_argument(
        "--skip", action="store_true", help="Keep an existing app without asking"
    )
    install.add_argument(
        "--feedback",
        choices=[mode.value for mode in FeedbackMode],
        default=None,
        help="Override the configured feedback mode",
    )
    install.add_argument(
        "--no-trash", action="store_true", help="Keep the .dmg after a successful install"
    )
    install.add_argument(
        "--no-reveal", action="store_true", help="Do not reveal the app in Finder"
    )
    install.add_argument(
        "--destination",
        type=Path,
        default=APPLICATIONS_DIR,
        help=argparse.SUPPRESS,
    )

    settings_parser = subparsers.add_parser("settings", help="Show or change preferences")
    settings_sub = settings_parser.add_subparsers(dest="settings_command")
    settings_sub.add_parser("show", help="Show current preferences")
    set_parser = settings_sub.add_parser("set", help="Change one preference")
    set_parser.add_argument("key", choices=sorted(settings.DEFAULT_SETTINGS))
    set_parser.add_argument("value")
    return parser


def build_confirmation_gate(args):
    if args.replace:
        return FixedConfirmationGate(ReplaceDecision.REPLACE)
    if args.skip:
        return FixedConfirmationGate(ReplaceDecision.SKIP)
    return PromptConfirmationGate()


def build_preferences_provider(args):
    overrides = {}
    if args.feedback:
        overrides["feedback_mode"] = FeedbackMode(args.feedback)
    if args.no_trash:
        overrides["auto_trash"] = False
    if args.no_reveal:
        overrides["reveal_after_install"] = False

    def provider():
        return replace(settings.load_preferences(), **overrides)

    return provider


def is_disk_image(path: Path) -> bool:
    return path.suffix.lower() == DISK_IMAGE_SUFFIX


def run_install(args, installer=None) -> int:
    log = LoggerFactory.for_system()
    installer = installer or Installer(
        confirmation_gate=build_confirmation_gate(args),
        preferences=build_preferences_provider(args),
        notifier=OsascriptNotifier(),
        destination_dir=args.destination,
    )

    exit_code = None
    for image in args.images:
        if not is_disk_image(image):
            log.warning(f"Not a DMG file, ignoring: {image}")
            continue
        outcome = installer.install(image)
        code = _EXIT_CODES[outcome.kind]
        if outcome.kind is not OutcomeKind.SUCCESS:
            print(f"{image.name}: {outcome.message}", file=sys.stderr)
        if exit_code is None or _SEVERITY[code] > _SEVERITY[exit_code]:
            exit_code = code

    if exit_code is None:
        print("No disk images to process", file=sys.stderr)
        return EXIT_ERROR
    return exit_code


def parse_setting_value(key: str, value: str):
    lowered = value.strip().lower()
    if key in _BOOL_KEYS:
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"Expected a boolean for {key}, got {value!r}")
    if key == "feedback_mode":
        return FeedbackMode(lowered).value
    return value


def run_settings(args) -> int:
    if getattr(args, "settings_command", None) == "set":
        try:
            value = parse_setting_value(args.key, args.value)
        except ValueError as error:
            print(f"Invalid value: {error}", file=sys.stderr)
            return EXIT_ERROR
        settings.set_setting(args.key, value)
        LoggerFactory.for_system().info(f"Setting {args.key} = {value!r}")
    for key in sorted(settings.DEFAULT_SETTINGS):
        print(f"{key} = {settings.get_setting(key)}")
    return EXIT_SUCCESS


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)

    if args.command == "install":
        return run_install(args)
    return run_settings(args)


if __name__ == "__main__":
    sys.exit(main())
