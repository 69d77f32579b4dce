# CLI Main
import argparse
import sys

from webgate import __version__
from webgate.cli.commands import cmd_cookies, cmd_models, cmd_serve, cmd_set_model, cmd_status
from webgate.core.config import ConfigManager
from webgate.core.exceptions import ConfigurationError
from webgate.logging_config import setup_logging


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser"""
    parser = argparse.ArgumentParser(
        prog="webgate",
        description="Web Model API Gateway - OpenAI/Google compatible APIs over web chat models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Path to app.config.json (default: $WEBGATE_CONFIG)")
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_p = subparsers.add_parser("serve", help="Start the gateway")
    serve_p.add_argument("--mode", choices=["webai", "native-api"], help="Mode to start in")

    subparsers.add_parser("status", help="Probe providers and show runtime status")
    subparsers.add_parser("models", help="List supported model ids")

    set_model_p = subparsers.add_parser("set-model", help="Persist a new default model")
    set_model_p.add_argument("model", help="Model id")

    cookies_p = subparsers.add_parser("cookies", help="Manage the cached Gemini browser login")
    cookies_p.add_argument("action", nargs="?", choices=["set", "list", "clear"], default="list")
    cookies_p.add_argument("--account", default="default", help="Account label (browser name)")
    cookies_p.add_argument("--psid", help="__Secure-1PSID cookie value")
    cookies_p.add_argument("--psidts", help="__Secure-1PSIDTS cookie value")
    cookies_p.add_argument(
        "--expires-days", type=float, default=0, help="Drop the login after N days (0 = never)"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        log_level = ConfigManager(args.config).config.log_level
    except ConfigurationError as e:
        print(f"Config error: {e.message}", file=sys.stderr)
        return 1
    setup_logging(level=log_level, json_format=args.log_json)

    if args.command == "serve":
        return cmd_serve(args)
    if args.command == "status":
        return cmd_status(args)
    if args.command == "models":
        return cmd_models(args)
    if args.command == "set-model":
        return cmd_set_model(args)
    if args.command == "cookies":
        return cmd_cookies(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
