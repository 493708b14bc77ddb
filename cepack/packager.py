"""Orchestration of decorate, pack and launch over the configured builds."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List
import shutil

from .build import Build, ConfigValidationError
from .command_runner import CommandRunner
from .config_loader import ProjectConfiguration
from .console import Console
from .environment import HostSystem
from .launcher import Launcher
from .manifest import package_descriptor_name, render_bundle_manifest, render_debug_descriptor, render_package_descriptor
from .signer import SigningTool


class PackagingFailed(RuntimeError):
    """Raised when one or more builds could not be packaged."""

    def __init__(self, failures: Dict[str, Exception]):
        details = "; ".join(f"{name}: {exc}" for name, exc in failures.items())
        super().__init__(f"Unable to package {len(failures)} build(s): {details}")
        self.failures = failures


class Packager:
    def __init__(
        self,
        config: ProjectConfiguration,
        runner: CommandRunner,
        console: Console,
        *,
        system: HostSystem | None = None,
        max_workers: int = 4,
        signer: SigningTool | None = None,
        launcher: Launcher | None = None,
    ) -> None:
        self.config = config
        self._runner = runner
        self._console = console
        self._system = system or HostSystem.current()
        self._max_workers = max(1, max_workers)
        self._signer = signer or SigningTool(
            runner,
            console,
            executable=config.packaging.signer,
            timeout=config.packaging.sign_timeout,
        )
        self._launcher = launcher or Launcher(runner, console, system=self._system)

    def decorate(self, name: str, debug: bool = False) -> Build:
        """Render the manifests of one build into its source folder."""

        build = self.config.get_build(name)
        return self._decorate_build(build, debug)

    def decorate_all(self, debug: bool = False) -> List[str]:
        """Decorate every build; returns the names of the builds that failed."""

        failed: List[str] = []
        builds = list(self.config.builds.values())
        if not builds:
            self._console.info("No builds configured")
            return failed

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {executor.submit(self._decorate_build, build, debug): build.name for build in builds}
            for future in as_completed(futures):
                name = futures[future]
                try:
                    future.result()
                except Exception as exc:
                    self._console.error(f'Skipping build "{name}": {exc}')
                    failed.append(name)
        return sorted(failed)

    def pack(self, debug: bool = False) -> Path:
        """Sign every build and bundle them into a single installer archive."""

        packaging = self.config.packaging
        if packaging.output is None:
            raise ConfigValidationError("packaging.output is not set")
        if packaging.staging is None:
            raise ConfigValidationError("packaging.staging is not set")
        builds = list(self.config.builds.values())
        if not builds:
            raise ConfigValidationError("No builds configured for packaging")

        staging = packaging.staging
        self._reset_folder(staging)
        try:
            certificate = packaging.certificate
            if certificate.file is not None and not certificate.file.exists():
                self._signer.create_certificate(certificate)

            failures: Dict[str, Exception] = {}
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                futures = {executor.submit(self._pack_build, build, staging, debug): build.name for build in builds}
                for future in as_completed(futures):
                    name = futures[future]
                    try:
                        future.result()
                    except Exception as exc:
                        self._console.error(f'Unable to package build "{name}": {exc}')
                        failures[name] = exc
            if failures:
                raise PackagingFailed(failures)

            descriptor = staging / package_descriptor_name(builds)
            content = render_package_descriptor(
                builds,
                template=packaging.mxi,
                description=packaging.description,
                license=packaging.license,
            )
            self._write(descriptor, content)

            return self._signer.sign(
                staging,
                packaging.output,
                certificate,
                timestamp_url=packaging.timestamp_url,
            )
        finally:
            self._remove_folder(staging)

    def launch(
        self,
        name: str,
        product: str | None = None,
        family: str | None = None,
        debug: bool = False,
    ) -> None:
        build = self.decorate(name, debug)
        target = build.resolve_install_target(product, family, debug=debug, system=self._system)
        self._launcher.run(build, target)

    def _decorate_build(self, build: Build, debug: bool) -> Build:
        console = self._console.child(build.name)
        build.initialize()
        documents: List[tuple[Path, str]] = []
        if debug:
            build.apply_debug_transform()
            documents.append((build.source / ".debug", render_debug_descriptor(build)))
        documents.append((build.source / "CSXS" / "manifest.xml", render_bundle_manifest(build)))
        # Render everything before writing anything.
        for path, content in documents:
            self._write(path, content, console)
        console.info(f"Decorated {build.bundle.id} {build.bundle.version}")
        return build

    def _pack_build(self, build: Build, staging: Path, debug: bool) -> Path:
        self._decorate_build(build, debug)
        return self._signer.sign(
            build.source,
            staging / build.output_archive_name,
            self.config.packaging.certificate,
            timestamp_url=self.config.packaging.timestamp_url,
        )

    def _write(self, path: Path, content: str, console: Console | None = None) -> None:
        console = console or self._console
        if console.dry_run:
            console.dry(f"Would write {path}")
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        console.debug(f"Wrote {path}")

    def _reset_folder(self, folder: Path) -> None:
        if self._console.dry_run:
            self._console.dry(f"Would recreate {folder}")
            return
        if folder.exists():
            shutil.rmtree(folder)
        folder.mkdir(parents=True)

    def _remove_folder(self, folder: Path) -> None:
        if self._console.dry_run:
            self._console.dry(f"Would remove {folder}")
            return
        shutil.rmtree(folder, ignore_errors=True)
