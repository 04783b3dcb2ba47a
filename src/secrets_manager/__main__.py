# Main Entry Point - secrets-manager CLI
#
# Usage:
#   secrets-manager create myapp
#   secrets-manager add myapp API_KEY
#   eval "$(secrets-manager export myapp)"

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .cli import CommandError, SecretManager
from .core import configure_audit_logger, load_config
from .vault import ProjectStore, VaultError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="secrets-manager",
        description="A secure local secrets manager for development",
    )
    parser.add_argument(
        "--storage-dir",
        help="Directory holding encrypted projects "
             "(default: $SECRETS_MANAGER_HOME or ~/.secrets_manager)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"secrets-manager {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    # create
    p = sub.add_parser("create", help="Create a new project")
    p.add_argument("project_name", help="Name of the project")

    # list
    sub.add_parser("list", help="List all projects")

    # add
    p = sub.add_parser("add", help="Add a secret to a project")
    p.add_argument("project_name", help="Name of the project")
    p.add_argument("key", help="Secret key")
    p.add_argument("value", nargs="?", help="Secret value (if not provided, will prompt)")

    # remove
    p = sub.add_parser("remove", help="Remove a secret from a project")
    p.add_argument("project_name", help="Name of the project")
    p.add_argument("key", help="Secret key to remove")

    # show
    p = sub.add_parser("show", help="List secrets in a project")
    p.add_argument("project_name", help="Name of the project")

    # export
    p = sub.add_parser("export", help="Export secrets in various formats")
    p.add_argument("project_name", help="Name of the project")
    p.add_argument("-f", "--format", default="shell", help="Export format (shell, env, json)")
    p.add_argument("-o", "--output", help="Output file (optional, defaults to stdout)")
    p.add_argument("--gitignore", action="store_true",
                   help="Add the output file to .gitignore when inside a git repository")

    # delete
    p = sub.add_parser("delete", help="Delete a project")
    p.add_argument("project_name", help="Name of the project")
    p.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")

    # import
    p = sub.add_parser("import", help="Import secrets from a .env file")
    p.add_argument("project_name", help="Name of the project")
    p.add_argument("env_file", help="Path to the .env file")
    p.add_argument("--create", action="store_true", help="Create the project if it does not exist")
    p.add_argument("--overwrite", action="store_true", help="Replace secrets that already exist")

    return parser


def run_command(manager: SecretManager, args: argparse.Namespace) -> None:
    if args.command == "create":
        manager.create_project(args.project_name)
    elif args.command == "list":
        manager.list_projects()
    elif args.command == "add":
        manager.add_secret(args.project_name, args.key, args.value)
    elif args.command == "remove":
        manager.remove_secret(args.project_name, args.key)
    elif args.command == "show":
        manager.show_project(args.project_name)
    elif args.command == "export":
        manager.export_project(args.project_name, args.format, args.output, args.gitignore)
    elif args.command == "delete":
        manager.delete_project(args.project_name, assume_yes=args.yes)
    elif args.command == "import":
        manager.import_env(
            args.project_name, args.env_file, create=args.create, overwrite=args.overwrite
        )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for secrets-manager. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.storage_dir)
        audit = configure_audit_logger(config.log_dir, enabled=config.audit_enabled)
        manager = SecretManager(ProjectStore(config.storage_dir, audit), audit)
        run_command(manager, args)
    except (VaultError, CommandError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e.strerror or e}", file=sys.stderr)
        return 1
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
