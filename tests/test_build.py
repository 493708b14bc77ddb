from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from cepack.build import (
    BUNDLE_ID_PATTERN,
    Build,
    ConfigValidationError,
    ExecutableNotFound,
    FamilyMode,
    ProductNotInBuild,
    parse_families,
    parse_products,
)
from cepack.environment import HostSystem
from cepack.hosts import UnknownFamily


def _build_data(default_source: Path, **overrides) -> dict:
    data = {
        "source": str(default_source),
        "bundle": {"author": "Example Co"},
        "extensions": [
            {
                "id": "com.example.panel",
                "name": "Example Panel",
                "version": "1.2.0",
                "main_path": "./index.html",
            }
        ],
        "products": ["photoshop", "illustrator"],
        "families": ["cc2015", "cc2014"],
    }
    data.update(overrides)
    return data


class ParsingTests(unittest.TestCase):
    def test_products_are_normalized(self) -> None:
        self.assertEqual(parse_products([" Photoshop", "photoshop", "", "InDesign"]), ("photoshop", "indesign"))
        self.assertEqual(parse_products("Flash"), ("flash",))
        self.assertEqual(parse_products(None), ())

    def test_string_selects_minimum_mode(self) -> None:
        families = parse_families("CC2014")
        self.assertEqual(families.mode, FamilyMode.MINIMUM)
        self.assertEqual(families.lowest, "cc2014")
        self.assertTrue(families.includes("cc2015.5"))
        self.assertFalse(families.includes("cc"))

    def test_minimum_mode_includes_every_later_family(self) -> None:
        families = parse_families("cc2015")
        self.assertEqual([name for name in ("cc", "cc2014", "cc2015", "cc2015.5") if families.includes(name)], ["cc2015", "cc2015.5"])
        with self.assertRaises(UnknownFamily):
            families.includes("cc2017")

    def test_list_selects_range_mode_in_release_order(self) -> None:
        families = parse_families(["cc2015.5", "cc2014"])
        self.assertTrue(families.is_range)
        self.assertEqual(families.names, ("cc2014", "cc2015.5"))
        self.assertFalse(families.includes("cc2015"))

    def test_version_bounds(self) -> None:
        self.assertEqual(parse_families("cc2015").version_bounds("photoshop"), (16.0, None))
        self.assertEqual(parse_families(["cc2014", "cc2015"]).version_bounds("photoshop"), (15.0, 16.9))


class BuildInitializeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.source = self.root / "panel"
        self.source.mkdir()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _build(self, **overrides) -> Build:
        return Build.from_mapping("panel", _build_data(self.source, **overrides), base_dir=self.root)

    def test_backfills_bundle_identity_from_first_extension(self) -> None:
        build = self._build()
        build.initialize()
        self.assertEqual(build.bundle.id, "com.example.panel")
        self.assertEqual(build.bundle.version, "1.2.0")
        self.assertEqual(build.bundle.name, "Example Panel")
        self.assertEqual(build.bundle.author, "Example Co")
        self.assertEqual(build.base_name, "com.example.panel")

    def test_explicit_bundle_values_win(self) -> None:
        build = self._build(bundle={"id": "Com.Example.Bundle", "version": "2", "name": "Bundle", "author": "Me"})
        build.initialize()
        self.assertEqual(build.bundle.id, "Com.Example.Bundle")
        self.assertEqual(build.bundle.version, "2")
        self.assertEqual(build.base_name, "com.example.bundle")

    def test_author_falls_back_to_extension(self) -> None:
        extensions = [{"id": "com.example.panel", "name": "Panel", "author": "Ext Author"}]
        build = self._build(bundle={}, extensions=extensions)
        build.initialize()
        self.assertEqual(build.bundle.author, "Ext Author")

    def test_relative_source_resolves_against_base_dir(self) -> None:
        build = self._build(source="panel")
        self.assertEqual(build.source, self.source)
        build.initialize()

    def test_invalid_bundle_id_rejected(self) -> None:
        build = self._build(bundle={"id": "com example", "author": "Me"})
        with self.assertRaises(ConfigValidationError) as ctx:
            build.initialize()
        self.assertIn("panel", str(ctx.exception))
        self.assertFalse(build.initialized)

    def test_invalid_version_rejected(self) -> None:
        build = self._build(bundle={"version": "1.a", "author": "Me"})
        with self.assertRaises(ConfigValidationError):
            build.initialize()

    def test_missing_pieces_rejected(self) -> None:
        cases = [
            {"extensions": []},
            {"products": []},
            {"families": []},
            {"bundle": {}},
            {"source": str(self.root / "missing")},
        ]
        for overrides in cases:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ConfigValidationError):
                    self._build(**overrides).initialize()

    def test_failed_initialize_leaves_bundle_untouched(self) -> None:
        build = self._build(products=[])
        with self.assertRaises(ConfigValidationError):
            build.initialize()
        self.assertIsNone(build.bundle.id)

    def test_initialize_is_idempotent(self) -> None:
        build = self._build()
        build.initialize()
        build.bundle.id = "changed"
        build.initialize()
        self.assertEqual(build.bundle.id, "changed")

    def test_debug_transform_applies_once(self) -> None:
        build = self._build()
        build.apply_debug_transform()
        build.apply_debug_transform()
        self.assertTrue(build.debug)
        self.assertEqual(build.bundle.id, "com.example.panel.debug")
        self.assertEqual(build.bundle.name, "Example Panel (debug)")
        self.assertEqual(build.extensions[0].id, "com.example.panel.debug")
        self.assertEqual(build.extensions[0].name, "Example Panel (debug)")
        self.assertEqual(build.base_name, "com.example.panel")
        self.assertTrue(BUNDLE_ID_PATTERN.fullmatch(build.bundle.id))
        for extension in build.extensions:
            self.assertTrue(BUNDLE_ID_PATTERN.fullmatch(extension.id))

    def test_output_archive_names_are_unique(self) -> None:
        self.assertNotEqual(self._build().output_archive_name, self._build().output_archive_name)
        self.assertTrue(self._build().output_archive_name.endswith(".zxp"))


class InstallTargetTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.source = self.root / "panel"
        self.source.mkdir()
        self.program_files = self.root / "Program Files"
        self.appdata = self.root / "AppData"
        self.system = HostSystem(
            os_name="windows",
            architecture="AMD64",
            env={"PROGRAMFILES": str(self.program_files), "APPDATA": str(self.appdata)},
        )

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _install_host(self, folder: str, executable: str) -> Path:
        path = self.program_files / "Adobe" / folder / executable
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")
        return path

    def test_defaults_to_first_product_and_earliest_family(self) -> None:
        executable = self._install_host("Adobe Photoshop CC 2014", "Photoshop.exe")
        build = Build.from_mapping("panel", _build_data(self.source), base_dir=self.root)
        target = build.resolve_install_target(system=self.system)
        self.assertEqual(target.product, "photoshop")
        self.assertEqual(target.family, "cc2014")
        self.assertEqual(target.executable, executable)
        self.assertEqual(target.install_dir, self.appdata / "Adobe" / "CEP" / "extensions" / "com.example.panel")

    def test_debug_install_folder(self) -> None:
        self._install_host("Adobe Photoshop CC 2015", "Photoshop.exe")
        build = Build.from_mapping("panel", _build_data(self.source), base_dir=self.root)
        target = build.resolve_install_target("Photoshop", "cc2015", debug=True, system=self.system)
        self.assertEqual(target.install_dir.name, "com.example.panel.debug")

    def test_legacy_family_uses_service_manager_and_64bit_folder(self) -> None:
        executable = self._install_host("Adobe Photoshop CC (64 Bit)", "Photoshop.exe")
        build = Build.from_mapping("panel", _build_data(self.source, families="cc"), base_dir=self.root)
        target = build.resolve_install_target(system=self.system)
        self.assertEqual(target.executable, executable)
        self.assertEqual(target.extensions_dir, self.appdata / "Adobe" / "CEPServiceManager4" / "extensions")

    def test_install_folder_override(self) -> None:
        executable = self._install_host("Adobe Illustrator CC 2015.3", "Support Files/Contents/Windows/Illustrator.exe")
        build = Build.from_mapping("panel", _build_data(self.source, families="cc2015.5"), base_dir=self.root)
        target = build.resolve_install_target("illustrator", system=self.system)
        self.assertEqual(target.executable, executable)

    def test_product_not_in_build(self) -> None:
        build = Build.from_mapping("panel", _build_data(self.source), base_dir=self.root)
        with self.assertRaises(ProductNotInBuild):
            build.resolve_install_target("indesign", system=self.system)
        with self.assertRaises(ProductNotInBuild):
            build.resolve_install_target("photoshop", "cc", system=self.system)

    def test_missing_executable(self) -> None:
        build = Build.from_mapping("panel", _build_data(self.source), base_dir=self.root)
        with self.assertRaises(ExecutableNotFound) as ctx:
            build.resolve_install_target(system=self.system)
        self.assertIn("Photoshop", str(ctx.exception))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
