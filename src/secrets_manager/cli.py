# Command handlers for the secrets-manager CLI
#
# Every command reduces to ProjectStore.{save, load, list, delete, exists}
# plus in-memory Project mutations. Prompts use getpass so passwords and
# secret values are never echoed.

import getpass
import os
import sys
from pathlib import Path
from typing import Optional

from .core.audit_log import AuditLogger, EventType, get_audit_logger
from .exporters import ExportFormat, format_export, parse_env_file
from .gitignore import ensure_ignored, find_repo_root, is_ignored
from .vault import Project, ProjectAlreadyExists, ProjectNotFound, ProjectStore


class CommandError(Exception):
    """Raised for invalid user input (empty password, mismatch, bad format)"""
    pass


class SecretManager:
    """Interactive front end over a ProjectStore."""

    def __init__(self, store: ProjectStore, audit_logger: Optional[AuditLogger] = None):
        self.store = store
        self.audit = audit_logger or get_audit_logger()

    # ── Prompts ─────────────────────────────────────────────────────

    @staticmethod
    def get_password() -> str:
        password = getpass.getpass("Enter master password: ")
        if not password:
            raise CommandError("Password cannot be empty")
        return password

    @staticmethod
    def get_password_with_confirmation() -> str:
        """Prompts for password with confirmation for new projects"""
        password = SecretManager.get_password()
        confirm_password = getpass.getpass("Confirm master password: ")
        if password != confirm_password:
            raise CommandError("Passwords do not match")
        return password

    @staticmethod
    def get_secret_value(key: str) -> str:
        return getpass.getpass(f"Enter value for '{key}': ")

    @staticmethod
    def confirm(question: str) -> bool:
        answer = input(f"{question} (y/N): ")
        return answer.strip().lower() in ("y", "yes")

    # ── Commands ────────────────────────────────────────────────────

    def create_project(self, project_name: str) -> None:
        if self.store.exists(project_name):
            raise ProjectAlreadyExists(project_name)

        password = self.get_password_with_confirmation()
        project = Project.new(project_name)
        self.store.save(project, password)

        self.audit.log_project_event(EventType.PROJECT_CREATED, project_name, "created")
        print(f"✅ Project '{project_name}' created successfully!")

    def list_projects(self) -> None:
        projects = self.store.list()

        if not projects:
            print("No projects found. Create one with: secrets-manager create <project-name>")
            return

        print("📁 Available projects:")
        for project in projects:
            print(f"  • {project}")

    def add_secret(self, project_name: str, key: str, value: Optional[str] = None) -> None:
        if not key:
            raise CommandError("Secret key cannot be empty")

        password = self.get_password()
        project = self.store.load(project_name, password)

        secret_value = value if value is not None else self.get_secret_value(key)
        project.add_secret(key, secret_value)
        self.store.save(project, password)

        print(f"✅ Secret '{key}' added to project '{project_name}'")

    def remove_secret(self, project_name: str, key: str) -> bool:
        password = self.get_password()
        project = self.store.load(project_name, password)

        if project.remove_secret(key) is None:
            print(f"❌ Secret '{key}' not found in project '{project_name}'")
            return False

        self.store.save(project, password)
        print(f"✅ Secret '{key}' removed from project '{project_name}'")
        return True

    def show_project(self, project_name: str) -> None:
        password = self.get_password()
        project = self.store.load(project_name, password)

        print(f"🔐 Project: {project.name}")
        print(f"📅 Created: {project.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        print(f"📅 Updated: {project.updated_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        print()

        keys = project.list_secrets()
        if not keys:
            print(f"No secrets found. Add one with: secrets-manager add {project_name} <key>")
            return

        print("Secrets:")
        for key in keys:
            print(f"  • {key}")

    def export_project(
        self,
        project_name: str,
        format_name: str = "shell",
        output: Optional[str] = None,
        add_to_gitignore: bool = False,
    ) -> None:
        try:
            export_format = ExportFormat.parse(format_name)
        except ValueError as e:
            raise CommandError(str(e)) from e

        password = self.get_password()
        project = self.store.load(project_name, password)
        content = format_export(project, export_format)

        self.audit.log_project_event(
            EventType.PROJECT_EXPORTED,
            project_name,
            f"exported as {export_format.value}",
            details={
                "format": export_format.value,
                "secret_count": len(project.secrets),
                "destination": "file" if output else "stdout",
            },
        )

        if output is None:
            print(content, end="")
            return

        output_path = Path(output).expanduser()
        self._write_private_file(output_path, content)
        print(f"✅ Exported to: {output_path}")
        self._check_gitignore(output_path, add_to_gitignore)

    def delete_project(self, project_name: str, assume_yes: bool = False) -> bool:
        if not self.store.exists(project_name):
            raise ProjectNotFound(project_name)

        if not assume_yes and not self.confirm(
            f"⚠️  Are you sure you want to delete project '{project_name}'?"
        ):
            print("❌ Deletion cancelled")
            return False

        self.store.delete(project_name)
        print(f"✅ Project '{project_name}' deleted successfully!")
        return True

    def import_env(
        self,
        project_name: str,
        env_file: str,
        create: bool = False,
        overwrite: bool = False,
    ) -> None:
        try:
            pairs = parse_env_file(env_file)
        except FileNotFoundError as e:
            raise CommandError(str(e)) from e

        if self.store.exists(project_name):
            password = self.get_password()
            project = self.store.load(project_name, password)
            created = False
        elif create:
            password = self.get_password_with_confirmation()
            project = Project.new(project_name)
            created = True
        else:
            raise ProjectNotFound(project_name)

        added, skipped = [], []
        for key, value in pairs.items():
            if key in project.secrets and not overwrite:
                skipped.append(key)
                continue
            project.add_secret(key, value)
            added.append(key)

        if added or created:
            self.store.save(project, password)

        if created:
            self.audit.log_project_event(EventType.PROJECT_CREATED, project_name, "created by import")
        self.audit.log_project_event(
            EventType.PROJECT_IMPORTED,
            project_name,
            f"imported {len(added)} secrets",
            details={"added": len(added), "skipped": len(skipped)},
        )

        print(f"✅ Imported {len(added)} secret(s) into project '{project_name}'")
        if skipped:
            print(f"⚠️  Skipped {len(skipped)} existing key(s): {', '.join(sorted(skipped))}")
            print("   Use --overwrite to replace them")

    # ── Private helpers ─────────────────────────────────────────────

    @staticmethod
    def _write_private_file(path: Path, content: str):
        """Write plaintext export with owner-only permissions."""
        fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # O_CREAT's mode only applies to new files
        try:
            os.chmod(path, 0o600)
        except BaseException:
            os.close(fd)
            raise
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)

    @staticmethod
    def _check_gitignore(path: Path, add_to_gitignore: bool):
        if find_repo_root(path.parent) is None or is_ignored(path):
            return

        if add_to_gitignore:
            ensure_ignored(path)
            print(f"🙈 Added '{path.name}' to .gitignore")
        else:
            print(
                f"⚠️  '{path}' is inside a git repository and not ignored. "
                "Re-run with --gitignore to add it to .gitignore.",
                file=sys.stderr,
            )
