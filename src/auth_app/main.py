# src/auth_app/main.py
"""
drive-auth: authenticate a Google Drive account from the command line.

    drive-auth create   - authenticates a new account
    drive-auth refresh  - gets a new access token for the selected account
"""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import List, Optional

import colorlog
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape as rich_escape

from drive_auth import (
    AuthConfig,
    CredentialManager,
    CredentialOptions,
    DriveAuthError,
    NotInteractiveError,
    Session,
    TokenExchangeError,
)
from drive_auth.config import save_config_pointer
from drive_auth.prompts import ConsoleInputProvider
from drive_auth.utils.paths import get_logs_dir

err_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="drive-auth", description="Google Drive OAuth2 credential helper"
    )
    parser.add_argument(
        "command",
        choices=["create", "refresh"],
        help="'create' authenticates a new account, 'refresh' gets a new access token.",
    )
    parser.add_argument("--account", "-a", help="Use this configured account.")
    parser.add_argument(
        "--new-account", "-na", dest="new_account", help="Name for the account to create."
    )
    parser.add_argument(
        "--delete-account", "-da", dest="delete_account", help="Delete an account first."
    )
    parser.add_argument(
        "--list-accounts", "-la", action="store_true", help="List configured accounts."
    )
    parser.add_argument(
        "--service-account",
        "-sa",
        dest="service_account",
        help="Authenticate with a service account key file.",
    )
    parser.add_argument("--config", "-c", help="Credential store to use.")
    parser.add_argument(
        "--set-default-config",
        action="store_true",
        help="Remember --config as the default credential store.",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress to the console.")
    return parser


class DriveAuthDebugFilter(logging.Filter):
    def filter(self, record):
        return record.levelno == logging.DEBUG and record.name.startswith("drive_auth")


def configure_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> None:
    log_dir = get_logs_dir(log_dir)

    # stderr: stdout carries the account line
    console_handler = colorlog.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )

    file_format = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    info_file_handler = logging.FileHandler(log_dir / "drive_auth.log", encoding="utf-8")
    info_file_handler.setLevel(logging.INFO)
    info_file_handler.setFormatter(file_format)

    debug_file_handler = logging.FileHandler(
        log_dir / "drive_auth_debug.log", encoding="utf-8"
    )
    debug_file_handler.setLevel(logging.DEBUG)
    debug_file_handler.setFormatter(file_format)
    debug_file_handler.addFilter(DriveAuthDebugFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(info_file_handler)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(debug_file_handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def options_from_args(args: argparse.Namespace) -> CredentialOptions:
    new_account_name = None
    if args.command == "create":
        new_account_name = args.new_account or ""
    elif args.new_account:
        new_account_name = args.new_account
    return CredentialOptions(
        no_token_service=True,
        new_account_name=new_account_name,
        custom_account_name=args.account,
        delete_account_name=args.delete_account,
        list_accounts=args.list_accounts,
        service_account_file=args.service_account,
        force_refresh=args.command == "refresh",
    )


async def run(args: argparse.Namespace, session: Session) -> int:
    """Run one credential check and print the result. Returns the exit code."""
    try:
        stored_default = session.store.load().default_account
        print(f"Account: {args.account or stored_default or 'Not set yet'}")

        result = await CredentialManager(session).check_credentials(options_from_args(args))
    except TokenExchangeError as e:
        err_console.print("[bold red]Error: Something went wrong, printing error.[/bold red]")
        err_console.print(rich_escape(e.raw_response), highlight=False)
        return 1
    except NotInteractiveError as e:
        err_console.print(f"[bold red]Error:[/bold red] {rich_escape(e.message)}")
        if e.remediation:
            err_console.print(rich_escape(e.remediation))
        return 1
    except DriveAuthError as e:
        err_console.print(f"[bold red]Error:[/bold red] {rich_escape(str(e))}")
        return 1

    if result.is_new_account:
        err_console.print(f"Refresh Token: {result.refresh_token}\n", highlight=False)
    err_console.print(f"Access Token: {result.access_token}", highlight=False)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv(Path.cwd() / ".env")
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    config = AuthConfig.from_env(config_path=args.config)
    if args.set_default_config:
        if not args.config:
            err_console.print("[bold red]Error:[/bold red] --set-default-config needs --config")
            return 1
        save_config_pointer(config.config_path)

    session = Session.create(config, prompter=ConsoleInputProvider(console=err_console))
    try:
        return asyncio.run(run(args, session))
    except KeyboardInterrupt:
        err_console.print("\n[bold yellow]Script exited manually.[/bold yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
