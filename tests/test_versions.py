from __future__ import annotations

import unittest

from cepack.hosts import UnknownFamily, lookup
from cepack.versions import format_version, map_to_legacy_family_name, resolve_range, resolve_single


class ResolveRangeTests(unittest.TestCase):
    def test_single_family_matches_record(self) -> None:
        record = lookup("illustrator", "cc2014")
        merged = resolve_range("illustrator", ["cc2014"])
        self.assertEqual(merged, record.version_range)

    def test_range_spans_min_and_max(self) -> None:
        merged = resolve_range("photoshop", ["cc2014", "cc2015"])
        self.assertEqual((merged.min, merged.max), (15.0, 16.9))

    def test_order_does_not_matter(self) -> None:
        self.assertEqual(
            resolve_range("aftereffects", ["cc2015", "cc"]),
            resolve_range("aftereffects", ["cc", "cc2015"]),
        )

    def test_range_contains_every_member(self) -> None:
        families = ["cc", "cc2014", "cc2015", "cc2015.5"]
        merged = resolve_range("premiere", families)
        for family in families:
            record = lookup("premiere", family).version_range
            self.assertLessEqual(merged.min, record.min)
            self.assertGreaterEqual(merged.max, record.max)

    def test_empty_families_rejected(self) -> None:
        with self.assertRaises(ValueError):
            resolve_range("photoshop", [])

    def test_unknown_member_aborts(self) -> None:
        with self.assertRaises(UnknownFamily):
            resolve_range("photoshop", ["cc", "cs6"])

    def test_resolve_single(self) -> None:
        self.assertIs(resolve_single("flash", "cc"), lookup("flash", "cc"))


class LegacyNameTests(unittest.TestCase):
    def test_aliases_are_expanded(self) -> None:
        self.assertEqual(map_to_legacy_family_name("photoshop"), "Photoshop,Photoshop32,Photoshop64")
        self.assertEqual(map_to_legacy_family_name("indesign", "cc2015"), "InDesign,InDesign32,InDesign64")

    def test_other_products_keep_family_name(self) -> None:
        self.assertEqual(map_to_legacy_family_name("premiere"), "Premiere")
        self.assertEqual(map_to_legacy_family_name("aftereffects"), "AfterEffects")

    def test_format_version(self) -> None:
        self.assertEqual(format_version(16), "16.0")
        self.assertEqual(format_version(13.5), "13.5")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
