from __future__ import annotations

import unittest

from cepack.hosts import (
    REGISTRY,
    UnknownFamily,
    UnknownProduct,
    earliest_family,
    families_from,
    get_family,
    known_families,
    lookup,
    sort_families,
)


class RegistryTests(unittest.TestCase):
    def test_every_record_has_a_valid_range(self) -> None:
        for family in REGISTRY.values():
            for record in family.products.values():
                self.assertLessEqual(record.version_range.min, record.version_range.max, record.key)
                self.assertTrue(record.host_identifiers)

    def test_lookup_returns_product_record(self) -> None:
        record = lookup("photoshop", "cc2015")
        self.assertEqual(record.host_identifiers, ("PHXS", "PHSP"))
        self.assertEqual(record.version_range.min, 16.0)
        self.assertEqual(record.version_range.max, 16.9)
        self.assertEqual(record.family_display_name, "Photoshop")

    def test_unknown_family(self) -> None:
        with self.assertRaises(UnknownFamily) as ctx:
            lookup("photoshop", "cs6")
        self.assertIn("cs6", str(ctx.exception))

    def test_unknown_product(self) -> None:
        with self.assertRaises(UnknownProduct) as ctx:
            lookup("lightroom", "cc")
        self.assertIn("lightroom", str(ctx.exception))

    def test_registry_is_read_only(self) -> None:
        with self.assertRaises(TypeError):
            REGISTRY["cc2017"] = REGISTRY["cc"]  # type: ignore[index]

    def test_csxs_versions(self) -> None:
        self.assertEqual([get_family(name).csxs_version for name in known_families()], [4, 5, 6, 7])


class FamilyOrderingTests(unittest.TestCase):
    def test_sort_uses_release_order(self) -> None:
        self.assertEqual(
            sort_families(["cc2015.5", "cc", "cc2015", "cc2014"]),
            ["cc", "cc2014", "cc2015", "cc2015.5"],
        )

    def test_unknown_families_sort_last(self) -> None:
        self.assertEqual(sort_families(["zeta", "cc2014", "alpha"]), ["cc2014", "alpha", "zeta"])

    def test_earliest_family(self) -> None:
        self.assertEqual(earliest_family(), "cc")

    def test_families_from_minimum(self) -> None:
        self.assertEqual(families_from("cc2015"), ["cc2015", "cc2015.5"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
