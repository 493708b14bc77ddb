"""Install a decorated build into a host's extension folder and relaunch the host."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, List
import shutil
import time

from .build import Build, InstallTarget
from .command_runner import CommandRunner
from .console import Console
from .environment import HostSystem
from .hosts import get_family

# CC 2015.5 hosts ship a mix of CEP 6 and CEP 7 runtimes.
_EXTRA_DEBUG_FAMILIES = {"cc2015.5": ("cc2015",)}


def kill_command(target: InstallTarget, system: HostSystem) -> List[str]:
    if system.is_windows:
        return ["taskkill", "/IM", Path(target.host.executables.windows).name]
    app_name = target.host.executables.mac
    if app_name.endswith(".app"):
        app_name = app_name[: -len(".app")]
    return ["killall", app_name]


def debug_flag_commands(family: str, system: HostSystem) -> List[List[str]]:
    """Commands that switch ``PlayerDebugMode`` on for *family* and its companions."""

    commands: List[List[str]] = []
    for name in (family, *_EXTRA_DEBUG_FAMILIES.get(family, ())):
        version = get_family(name).csxs_version
        if system.is_windows:
            key = f"HKEY_CURRENT_USER\\Software\\Adobe\\CSXS.{version}"
            commands.append(["reg", "add", key, "/v", "PlayerDebugMode", "/d", "1", "/f"])
        else:
            plist = system.home() / "Library" / "Preferences" / f"com.adobe.CSXS.{version}.plist"
            commands.append(["defaults", "write", str(plist), "PlayerDebugMode", "1"])
    return commands


def launch_command(target: InstallTarget, system: HostSystem) -> List[str]:
    if system.is_windows:
        return ["explorer.exe", str(target.executable)]
    return ["open", "-F", "-n", str(target.executable)]


class Launcher:
    def __init__(
        self,
        runner: CommandRunner,
        console: Console,
        *,
        system: HostSystem,
        settle_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._runner = runner
        self._console = console
        self._system = system
        self._settle_delay = settle_delay
        self._sleep = sleep

    def run(self, build: Build, target: InstallTarget) -> None:
        fullname = f"Adobe {target.host.display_name} {target.family.upper()}"

        self._console.info(f"Closing {fullname}...")
        result = self._runner.run(kill_command(target, self._system), check=False, note="kill host")
        if result.returncode != 0:
            self._console.debug(f"{fullname} was not running")
        elif not self._console.dry_run:
            # Give the host time to shut down before touching its files.
            self._sleep(self._settle_delay)

        self._console.info("Setting OS debug mode...")
        for command in debug_flag_commands(target.family, self._system):
            self._console.debug(self._runner.format_command(command))
            self._runner.run(command, note="debug mode")
        if not self._system.is_windows:
            # Flush the preference cache so the new flag is picked up.
            self._runner.run(["pkill", "-9", "cfprefsd"], check=False, note="flush preferences")

        self.install(build, target.install_dir)

        self._console.info(f"Launching {build.name} in {fullname}...")
        self._runner.run(launch_command(target, self._system), check=False, note="launch host")

    def install(self, build: Build, install_dir: Path) -> None:
        self._console.info(f"Installing extension at {install_dir}...")
        if self._console.dry_run:
            self._console.dry(f"Would copy {build.source} to {install_dir}")
            return
        if install_dir.exists():
            shutil.rmtree(install_dir)
        install_dir.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(build.source, install_dir)
