from __future__ import annotations

from pathlib import Path
import io
import tempfile
import textwrap
import unittest
from contextlib import redirect_stderr, redirect_stdout

from cepack import cli


class CommandLineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        (self.root / "src" / "panel").mkdir(parents=True)
        self.config = self.root / "cepack.toml"
        self.config.write_text(
            textwrap.dedent(
                """
                [packaging]
                output = "dist/panel.zxp"

                [packaging.certificate]
                owner = "Example Co"
                file = "cert.p12"
                password = "pw"

                [builds.panel]
                source = "src/panel"
                products = ["photoshop", "illustrator"]
                families = ["cc2014", "cc2015"]

                [builds.panel.bundle]
                author = "Example Co"

                [[builds.panel.extensions]]
                id = "com.example.panel"
                name = "Panel"
                """
            )
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _run(self, *argv: str) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            status = cli.main(["-c", str(self.config), *argv])
        return status, stdout.getvalue(), stderr.getvalue()

    def test_decorate_single_build(self) -> None:
        status, stdout, _ = self._run("decorate", "panel")
        self.assertEqual(status, 0)
        self.assertIn("[INFO] [panel] Decorated com.example.panel 0.1.0", stdout)
        manifest = (self.root / "src" / "panel" / "CSXS" / "manifest.xml").read_text(encoding="utf-8")
        self.assertIn('Version="[15.0,16.9]"', manifest)

    def test_compile_alias_decorates_all(self) -> None:
        status, _, _ = self._run("compile", "-d")
        self.assertEqual(status, 0)
        self.assertTrue((self.root / "src" / "panel" / ".debug").is_file())

    def test_pack_dry_run_prints_commands(self) -> None:
        status, stdout, _ = self._run("--dry-run", "package")
        self.assertEqual(status, 0)
        self.assertIn("[dry-run] certificate", stdout)
        self.assertIn("-selfSignedCert", stdout)
        self.assertEqual(stdout.count("-sign "), 2)
        for line in stdout.splitlines():
            if line.startswith("[dry-run]"):
                self.assertNotIn("pw", line.split())
        self.assertIn("****", stdout)
        self.assertFalse((self.root / "src" / "panel" / "CSXS").exists())
        self.assertFalse((self.root / "dist").exists())

    def test_unknown_build_reports_error(self) -> None:
        status, _, stderr = self._run("decorate", "missing")
        self.assertEqual(status, 1)
        self.assertIn("error:", stderr)
        self.assertIn('error: Build "missing" not found. Available builds: panel', stderr)
        self.assertNotIn("error: '", stderr)

    def test_launch_unknown_product_reports_error(self) -> None:
        status, _, stderr = self._run("launch", "panel", "-p", "indesign")
        self.assertEqual(status, 1)
        self.assertIn('Could not find product "indesign"', stderr)

    def test_missing_config_reports_error(self) -> None:
        stderr = io.StringIO()
        with redirect_stdout(io.StringIO()), redirect_stderr(stderr):
            status = cli.main(["-c", str(self.root / "absent.toml"), "pack"])
        self.assertEqual(status, 1)
        self.assertIn("Configuration file not found", stderr.getvalue())


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
