"""Requests to the external ZXP signing tool."""
from __future__ import annotations

from pathlib import Path
from typing import List
import shutil
import subprocess

from .command_runner import CommandError, CommandRunner
from .config_loader import CertificateConfig
from .console import Console

# Self-signed certificates are issued with a fixed country/state pair.
_CERTIFICATE_LOCALITY = ("US", "NY")


class SigningFailed(RuntimeError):
    """Raised when the signing tool cannot produce an archive or certificate."""


def sign_command(
    executable: str,
    input_folder: Path,
    output_file: Path,
    certificate: CertificateConfig,
    timestamp_url: str = "",
) -> List[str]:
    command = [
        executable,
        "-sign",
        str(input_folder),
        str(output_file),
        str(certificate.file),
        certificate.password,
    ]
    if timestamp_url:
        command.extend(["-tsa", timestamp_url])
    return command


def certificate_command(executable: str, certificate: CertificateConfig) -> List[str]:
    return [
        executable,
        "-selfSignedCert",
        *_CERTIFICATE_LOCALITY,
        certificate.owner,
        certificate.owner,
        certificate.password,
        str(certificate.file),
    ]


class SigningTool:
    def __init__(
        self,
        runner: CommandRunner,
        console: Console,
        *,
        executable: str = "ZXPSignCmd",
        timeout: float | None = None,
    ) -> None:
        self._runner = runner
        self._console = console
        self._executable = shutil.which(executable) or executable
        self._timeout = timeout

    @property
    def executable(self) -> str:
        return self._executable

    def sign(
        self,
        input_folder: Path,
        output_file: Path,
        certificate: CertificateConfig,
        *,
        timestamp_url: str = "",
    ) -> Path:
        """Package and sign *input_folder* into *output_file*."""

        if not str(input_folder):
            raise SigningFailed(f"Invalid input folder: {input_folder}")
        if not str(output_file) or output_file.name == "":
            raise SigningFailed(f"Invalid output file: {output_file}")
        if certificate.file is None:
            raise SigningFailed("No certificate file configured for signing")

        # The signing tool refuses to overwrite an existing archive.
        if self._console.dry_run:
            self._console.dry(f"Would replace {output_file}")
        else:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.unlink(missing_ok=True)

        command = sign_command(self._executable, input_folder, output_file, certificate, timestamp_url)
        self._console.info(f"Creating ZXP package at {output_file}...")
        self._run(
            command,
            note="sign",
            failure=f"Unable to create ZXP package {output_file}",
            secret=certificate.password,
        )
        return output_file

    def create_certificate(self, certificate: CertificateConfig) -> Path:
        """Generate a self-signed certificate at ``certificate.file``."""

        if not certificate.owner:
            raise SigningFailed('Can not generate a self-signed certificate without specifying a valid "owner"')
        if certificate.file is None:
            raise SigningFailed("No certificate file configured")
        if not self._console.dry_run:
            certificate.file.parent.mkdir(parents=True, exist_ok=True)
        self._console.info(f"Generating certificate at {certificate.file}...")
        self._run(
            certificate_command(self._executable, certificate),
            note="certificate",
            failure="An error occurred when generating the self-signed certificate",
            secret=certificate.password,
        )
        return certificate.file

    def _run(self, command: List[str], *, note: str, failure: str, secret: str = "") -> None:
        secrets = (secret,) if secret else ()
        self._console.debug(self._runner.format_command(command, secrets))
        try:
            self._runner.run(command, note=note, timeout=self._timeout, secrets=secrets)
        except CommandError as exc:
            raise SigningFailed(f"{failure}: {exc}") from exc
        except subprocess.TimeoutExpired as exc:
            raise SigningFailed(f"{failure}: timed out after {exc.timeout} seconds") from exc
        except OSError as exc:
            raise SigningFailed(f"{failure}: {exc}") from exc
