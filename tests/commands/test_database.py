"""Tests for the database:dump and database:restore commands."""

from unittest.mock import patch

import pytest

from devkit.base.errors import CommandValidationError
from devkit.commands.base import FAILURE, SUCCESS
from devkit.commands.database import VALID_FILE_TYPES, DumpCommand, RestoreCommand
from devkit.deployment.docker_service import DockerService
from tests.conftest import RecordingRunner, transcript


@pytest.fixture
def output(make_output):
    return make_output()


def build(command_cls, fake_env, output, results=None, **params):
    runner = RecordingRunner(output, results=results)
    docker = DockerService(fake_env, output, tool="docker", runner=runner)
    return command_cls(output, environment=fake_env, docker_service=docker, **params), runner


class TestDump:
    """Test dumping the database to the host."""

    def test_dump_with_filename(self, fake_env, output, tmp_path):
        command, runner = build(DumpCommand, fake_env, output, destination_dir=str(tmp_path), filename="backup")

        assert command.run() == SUCCESS

        dump, copy, cleanup = runner.argvs
        assert dump[-1] == "mysqldump -u root --password=root SS_mysite | gzip > /tmp/backup.sql.gz"
        assert "mysite_database" in dump
        assert copy == ["docker", "cp", "mysite_database:/tmp/backup.sql.gz", str(tmp_path / "backup.sql.gz")]
        assert cleanup[-1] == "rm /tmp/backup.sql.gz"
        assert "[OK] Database dumped successfully." in transcript(output)

    def test_filename_is_quoted_in_shell(self, fake_env, output, tmp_path):
        command, runner = build(DumpCommand, fake_env, output, destination_dir=str(tmp_path), filename="my backup")

        assert command.run() == SUCCESS

        dump, cleanup = runner.commands
        assert dump.endswith("| gzip > '/tmp/my backup.sql.gz'")
        assert cleanup == "rm '/tmp/my backup.sql.gz'"
        # docker cp takes the path as a single argument, unquoted
        assert runner.argvs[1][2] == "mysite_database:/tmp/my backup.sql.gz"

    def test_default_filename(self, fake_env, output, tmp_path):
        command, runner = build(DumpCommand, fake_env, output, destination_dir=str(tmp_path))

        with patch("devkit.commands.database.datetime") as mock_datetime:
            mock_datetime.now.return_value.strftime.return_value = "2024-03-01T101500"
            command.run()

        assert runner.commands[0].endswith("/tmp/mysite.2024-03-01T101500.sql.gz")

    def test_relative_destination(self, fake_env, output, tmp_path, monkeypatch):
        (tmp_path / "dumps").mkdir()
        monkeypatch.chdir(tmp_path)
        command, runner = build(DumpCommand, fake_env, output, destination_dir="dumps", filename="db")

        command.run()

        assert runner.argvs[1][-1] == str(tmp_path / "dumps" / "db.sql.gz")

    def test_missing_destination(self, fake_env, output, tmp_path):
        command, _ = build(DumpCommand, fake_env, output, destination_dir=str(tmp_path / "nope"))

        with pytest.raises(CommandValidationError, match="does not exist"):
            command.run()

    def test_destination_is_a_file(self, fake_env, output, tmp_path):
        (tmp_path / "file").write_text("")
        command, _ = build(DumpCommand, fake_env, output, destination_dir=str(tmp_path / "file"))

        with pytest.raises(CommandValidationError, match="must not be a file"):
            command.run()

    def test_colon_in_filename(self, fake_env, output, tmp_path):
        command, _ = build(DumpCommand, fake_env, output, destination_dir=str(tmp_path), filename="a:b")

        with pytest.raises(CommandValidationError, match="colon"):
            command.run()

    def test_dump_failure_stops(self, fake_env, output, tmp_path):
        command, runner = build(DumpCommand, fake_env, output, results=[False], destination_dir=str(tmp_path))

        assert command.run() == FAILURE
        assert len(runner.invocations) == 1

    def test_copy_failure(self, fake_env, output, tmp_path):
        command, runner = build(
            DumpCommand, fake_env, output, results=[True, False], destination_dir=str(tmp_path)
        )

        assert command.run() == FAILURE
        assert len(runner.invocations) == 2
        assert "Problem occurred while copying file from docker container." in transcript(output)


class TestRestore:
    """Test restoring the database from the host."""

    @pytest.mark.parametrize(
        "filename,decompress",
        [
            ("db.sql", "cat /tmp/db.sql"),
            ("db.sql.gz", "zcat /tmp/db.sql.gz"),
            ("db.sql.tar.gz", "tar -O -xzf /tmp/db.sql.tar.gz"),
            ("db.sql.tgz", "tar -O -xzf /tmp/db.sql.tgz"),
            ("db.sql.tar", "tar -O -xf /tmp/db.sql.tar"),
            ("db.sql.bz2", "bunzip2 < /tmp/db.sql.bz2"),
            ("db.sql.zip", "unzip -p /tmp/db.sql.zip"),
        ],
    )
    def test_restore_by_file_type(self, fake_env, output, tmp_path, filename, decompress):
        source = tmp_path / filename
        source.write_bytes(b"")
        command, runner = build(RestoreCommand, fake_env, output, source_file=str(source))

        assert command.run() == SUCCESS

        copy, restore, cleanup = runner.argvs
        assert copy == ["docker", "cp", str(source), f"mysite_database:/tmp/{filename}"]
        assert restore[-1] == f"{decompress} | mysql -u root --password=root SS_mysite"
        assert cleanup[-1] == f"rm /tmp/{filename}"

    def test_dotted_names_use_the_suffix(self, fake_env, output, tmp_path):
        """Only the end of the name decides the file type."""
        source = tmp_path / "site.sql.backup.sql.gz"
        source.write_bytes(b"")
        command, runner = build(RestoreCommand, fake_env, output, source_file=str(source))

        command.run()

        assert runner.commands[0].startswith("zcat ")

    def test_source_name_is_quoted_in_shell(self, fake_env, output, tmp_path):
        source = tmp_path / "db dump (1).sql.gz"
        source.write_bytes(b"")
        command, runner = build(RestoreCommand, fake_env, output, source_file=str(source))

        assert command.run() == SUCCESS

        restore, cleanup = runner.commands
        assert restore.startswith("zcat '/tmp/db dump (1).sql.gz' | ")
        assert cleanup == "rm '/tmp/db dump (1).sql.gz'"

    def test_unsupported_file_type(self, fake_env, output, tmp_path):
        source = tmp_path / "db.sql.xz"
        source.write_bytes(b"")
        command, runner = build(RestoreCommand, fake_env, output, source_file=str(source))

        with pytest.raises(CommandValidationError) as exc_info:
            command.run()

        for file_type in VALID_FILE_TYPES:
            assert file_type in str(exc_info.value)
        assert runner.invocations == []

    def test_missing_file(self, fake_env, output, tmp_path):
        command, _ = build(RestoreCommand, fake_env, output, source_file=str(tmp_path / "gone.sql"))

        with pytest.raises(CommandValidationError, match="does not exist"):
            command.run()

    def test_directory_is_not_a_file(self, fake_env, output, tmp_path):
        (tmp_path / "dir.sql").mkdir()
        command, _ = build(RestoreCommand, fake_env, output, source_file=str(tmp_path / "dir.sql"))

        with pytest.raises(CommandValidationError, match="must be a file"):
            command.run()

    def test_copy_failure_stops(self, fake_env, output, tmp_path):
        source = tmp_path / "db.sql"
        source.write_bytes(b"")
        command, runner = build(RestoreCommand, fake_env, output, results=[False], source_file=str(source))

        assert command.run() == FAILURE
        assert len(runner.invocations) == 1
        assert "Problem occurred while copying file to docker container." in transcript(output)
