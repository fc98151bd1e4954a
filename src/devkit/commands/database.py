"""Dumping and restoring an environment's database."""

import os
import shlex
from datetime import datetime
from pathlib import Path

from devkit.base.errors import CommandValidationError
from devkit.commands.base import FAILURE, SUCCESS, BaseCommand
from devkit.deployment.docker_service import CONTAINER_DATABASE
from devkit.deployment.process_runner import OutputMode
from devkit.io.step_level import StepLevel

MYSQL_CLIENT = "mysql -u root --password=root SS_mysite"
MYSQL_DUMP = "mysqldump -u root --password=root SS_mysite"

# Longest first, so ".sql.tar.gz" is never mistaken for ".sql.gz"
RESTORE_COMMANDS = {
    ".sql.zip": "unzip -p {path}",
    ".sql.tar.gz": "tar -O -xzf {path}",
    ".sql.tgz": "tar -O -xzf {path}",
    ".sql.tar": "tar -O -xf {path}",
    ".sql.gz": "zcat {path}",
    ".sql.bz2": "bunzip2 < {path}",
    ".sql": "cat {path}",
}
VALID_FILE_TYPES = tuple(RESTORE_COMMANDS)


def _absolute(path: str) -> Path:
    return Path(os.path.abspath(os.path.expanduser(path)))


class DatabaseCommand(BaseCommand):
    needs_environment = True
    uses_docker = True

    def rollback(self) -> None:
        # Nothing to undo
        pass

    def exec_in_database(self, command: str) -> bool:
        return bool(
            self.docker_service.exec(command, container=CONTAINER_DATABASE, output_mode=OutputMode.DEBUG)
        )


class DumpCommand(DatabaseCommand):
    """Dump the database to a gzipped file on the host."""

    name = "database:dump"

    def validate(self) -> None:
        self.dump_dir = _absolute(self.params["destination_dir"])
        filename = self.params.get("filename") or ""

        if not self.dump_dir.exists():
            raise CommandValidationError(f"destination-dir '{self.dump_dir}' does not exist.")
        if self.dump_dir.is_file():
            raise CommandValidationError("destination-dir must not be a file.")
        if ":" in str(self.dump_dir) or ":" in filename:
            raise CommandValidationError('Neither "destination-dir" nor "filename" can contain a colon.')

    def default_filename(self) -> str:
        return f"{self.env.name}.{datetime.now().strftime('%Y-%m-%dT%H%M%S')}"

    def do_execute(self) -> int:
        self.output.start_step(StepLevel.COMMAND, "Dumping database.")

        filename = self.params.get("filename") or self.default_filename()
        tmp_file = f"/tmp/{filename}.sql.gz"

        if not self.exec_in_database(f"{MYSQL_DUMP} | gzip > {shlex.quote(tmp_file)}"):
            self.output.end_step(StepLevel.COMMAND, success=False)
            return FAILURE

        self.output.writeln("Copying database to host.")
        if not self.docker_service.copy_from_container(
            CONTAINER_DATABASE, tmp_file, str(self.dump_dir / f"{filename}.sql.gz")
        ):
            self.output.end_step(
                StepLevel.COMMAND, "Problem occurred while copying file from docker container.", success=False
            )
            return FAILURE

        self.output.writeln("Cleaning up inside container.")
        if not self.exec_in_database(f"rm {shlex.quote(tmp_file)}"):
            self.output.end_step(StepLevel.COMMAND, success=False)
            return FAILURE

        self.output.end_step(StepLevel.COMMAND, "Database dumped successfully.")
        return SUCCESS


class RestoreCommand(DatabaseCommand):
    """Restore the database from a (possibly compressed) SQL file on the host."""

    name = "database:restore"

    def validate(self) -> None:
        self.source_file = _absolute(self.params["source_file"])

        if not self.source_file.exists():
            raise CommandValidationError(f"source-file '{self.source_file}' does not exist.")
        if not self.source_file.is_file():
            raise CommandValidationError("source-file must be a file.")
        if ":" in str(self.source_file):
            raise CommandValidationError("source-file cannot contain a colon.")
        if self.file_type() is None:
            raise CommandValidationError(f"source-file filetype must be one of {', '.join(VALID_FILE_TYPES)}")

    def file_type(self) -> str | None:
        for extension in VALID_FILE_TYPES:
            if self.source_file.name.endswith(extension):
                return extension
        return None

    def restore_command(self, path: str) -> str:
        decompress = RESTORE_COMMANDS[self.file_type()].format(path=shlex.quote(path))
        return f"{decompress} | {MYSQL_CLIENT}"

    def do_execute(self) -> int:
        self.output.start_step(StepLevel.COMMAND, "Restoring database.")
        tmp_file = f"/tmp/{self.source_file.name}"

        self.output.writeln("Copying database to container.")
        if not self.docker_service.copy_to_container(CONTAINER_DATABASE, str(self.source_file), tmp_file):
            self.output.end_step(
                StepLevel.COMMAND, "Problem occurred while copying file to docker container.", success=False
            )
            return FAILURE

        self.output.writeln("Restoring database from file.")
        if not self.exec_in_database(self.restore_command(tmp_file)):
            self.output.end_step(StepLevel.COMMAND, success=False)
            return FAILURE

        self.output.writeln("Cleaning up inside container.")
        if not self.exec_in_database(f"rm {shlex.quote(tmp_file)}"):
            self.output.end_step(StepLevel.COMMAND, success=False)
            return FAILURE

        self.output.end_step(StepLevel.COMMAND, "Database restored successfully.")
        return SUCCESS
