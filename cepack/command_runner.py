"""External tool execution with a recording runner for dry runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence
import shlex
import subprocess

REDACTED = "****"


def redact(command: Sequence[str], secrets: Iterable[str] = ()) -> List[str]:
    """Replace every argument equal to one of *secrets* with a placeholder."""

    hidden = {secret for secret in secrets if secret}
    return [REDACTED if part in hidden else str(part) for part in command]


def format_command(command: Sequence[str], secrets: Iterable[str] = ()) -> str:
    hidden = {secret for secret in secrets if secret}
    return " ".join(REDACTED if part in hidden else shlex.quote(str(part)) for part in command)


@dataclass
class CommandResult:
    """Represents the outcome of an executed command."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """Raised when a checked command exits with a non-zero status."""

    def __init__(self, result: CommandResult, *, secrets: Iterable[str] = ()):
        message = f"{format_command(result.command, secrets)} exited with status {result.returncode}"
        detail = (result.stderr or result.stdout).strip()
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.result = result


class CommandRunner:
    """Abstract command runner interface."""

    def run(
        self,
        command: Sequence[str],
        *,
        check: bool = True,
        note: str | None = None,
        timeout: float | None = None,
        secrets: Sequence[str] = (),
    ) -> CommandResult:
        raise NotImplementedError

    def format_command(self, command: Sequence[str], secrets: Iterable[str] = ()) -> str:
        return format_command(command, secrets)


class SubprocessCommandRunner(CommandRunner):
    """Runs commands through :mod:`subprocess`, capturing their output."""

    def run(
        self,
        command: Sequence[str],
        *,
        check: bool = True,
        note: str | None = None,
        timeout: float | None = None,
        secrets: Sequence[str] = (),
    ) -> CommandResult:
        process = subprocess.run(
            [str(part) for part in command],
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
        result = CommandResult(
            command=list(command),
            returncode=process.returncode,
            stdout=process.stdout,
            stderr=process.stderr,
        )
        if check and not result.ok:
            raise CommandError(result, secrets=secrets)
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    note: str | None = None
    secrets: tuple[str, ...] = field(default=(), repr=False)

    def formatted(self) -> str:
        return format_command(self.command, self.secrets)


class RecordingCommandRunner(CommandRunner):
    """Records commands instead of executing them; every command succeeds."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: Sequence[str],
        *,
        check: bool = True,
        note: str | None = None,
        timeout: float | None = None,
        secrets: Sequence[str] = (),
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(command=[str(part) for part in command], note=note, secrets=tuple(secrets))
        )
        return CommandResult(command=list(command), returncode=0)

    def iter_commands(self) -> Iterator[RecordedCommand]:
        return iter(self.commands)

    def iter_formatted(self) -> Iterator[str]:
        for record in self.commands:
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(f"{record.note}:")
            parts.append(record.formatted())
            yield " ".join(parts)
