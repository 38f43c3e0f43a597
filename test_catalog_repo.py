import json
import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

import requests

from repository.catalog_repo import DEFAULT_VEHICLES, CatalogRegistry, build_catalog, load_catalog
from utils.errors import CatalogLoadFailure, CatalogNotReady, EmptyCatalog
from utils.fuzzy import fuzzy_options

DOCUMENT = {
    "makes": ["Ford", "Toyota", "Volkswagen"],
    "modelsByMake": {"Ford": ["Focus", "Mustang GT"], "Toyota": ["RAV4"], "Volkswagen": ["Golf", "Golf R"]},
    "vehicles": [
        {"filename": "toyota_rav4_2018.jpg", "make": "Toyota", "model": "RAV4", "year": "2018"},
    ],
}


class TestBuildCatalog(unittest.TestCase):
    def test_document(self):
        catalog = build_catalog(DOCUMENT)
        self.assertEqual(catalog.makes, ("Ford", "Toyota", "Volkswagen"))
        self.assertEqual(len(catalog.vehicles), 1)
        self.assertEqual(catalog.vehicles[0].image_ref, "toyota_rav4_2018.jpg")

    def test_default_vehicles(self):
        catalog = build_catalog({"makes": ["Ford"], "modelsByMake": {"Ford": ["Mustang GT"]}})
        self.assertEqual(catalog.vehicles, DEFAULT_VEHICLES)

    def test_empty_vehicles(self):
        with self.assertRaises(EmptyCatalog):
            build_catalog({**DOCUMENT, "vehicles": []})

    def test_invalid_shape(self):
        with self.assertRaises(CatalogLoadFailure):
            build_catalog({"makes": "Ford", "vehicles": [{"make": "Ford"}]})

    def test_models_for(self):
        catalog = build_catalog(DOCUMENT)
        self.assertEqual(catalog.models_for(" Volkswagen "), ["Golf", "Golf R"])
        # unknown make falls back to every model
        self.assertEqual(catalog.models_for("Tesla"), ["Focus", "Mustang GT", "RAV4", "Golf", "Golf R"])


class TestLoadCatalog(unittest.TestCase):
    def _write(self, text):
        fd, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_file(self):
        catalog = load_catalog(self._write(json.dumps(DOCUMENT)))
        self.assertEqual(catalog.vehicles[0].model, "RAV4")

    def test_missing_file(self):
        with self.assertRaises(CatalogLoadFailure):
            load_catalog("/nonexistent/catalog.json")

    def test_bad_json(self):
        with self.assertRaises(CatalogLoadFailure):
            load_catalog(self._write("{not json"))

    @patch("repository.catalog_repo.requests.get")
    def test_http(self, mock_get):
        response = MagicMock()
        response.json.return_value = DOCUMENT
        mock_get.return_value = response
        catalog = load_catalog("https://example.com/catalog.json")
        self.assertEqual(len(catalog.vehicles), 1)
        response.raise_for_status.assert_called_once()

    @patch("repository.catalog_repo.requests.get")
    def test_http_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("down")
        with self.assertRaises(CatalogLoadFailure):
            load_catalog("http://example.com/catalog.json")


class TestRegistry(unittest.TestCase):
    def test_not_ready_until_loaded(self):
        registry = CatalogRegistry("/nonexistent/catalog.json")
        with self.assertRaises(CatalogNotReady):
            registry.require()

        with self.assertLogs("repository.catalog_repo", level="ERROR"):
            status = registry.reload()
        self.assertFalse(status.ready)
        self.assertIn("Could not read catalog", status.error)
        with self.assertRaises(CatalogNotReady):
            registry.require()

    def test_manual_reload_recovers(self):
        registry = CatalogRegistry("/nonexistent/catalog.json")
        with self.assertLogs("repository.catalog_repo", level="ERROR"):
            registry.reload()

        fd, path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(DOCUMENT, f)
        self.addCleanup(os.remove, path)

        registry.source = path
        status = registry.reload()
        self.assertTrue(status.ready)
        self.assertEqual(status.vehicles, 1)
        self.assertIsNone(registry.error)
        self.assertEqual(registry.require().makes[0], "Ford")

    def test_bundled_catalog(self):
        here = os.path.dirname(os.path.abspath(__file__))
        catalog = load_catalog(os.path.join(here, "catalog.json"))
        self.assertEqual(len(catalog.vehicles), 3)
        for vehicle in catalog.vehicles:
            self.assertIn(vehicle.model, catalog.models_by_make[vehicle.make])


class TestFuzzyOptions(unittest.TestCase):
    MAKES = ["Audi", "BMW", "Ford", "Honda", "Hyundai", "Mazda", "Toyota"]

    def test_blank_returns_all(self):
        self.assertEqual(fuzzy_options("  ", self.MAKES), self.MAKES)

    def test_prefix_before_substring(self):
        self.assertEqual(fuzzy_options("d", self.MAKES), ["Audi", "Ford", "Honda", "Hyundai", "Mazda"])
        self.assertEqual(fuzzy_options("h", self.MAKES), ["Honda", "Hyundai"])
        self.assertEqual(fuzzy_options("o", self.MAKES), ["Ford", "Honda", "Toyota"])
        self.assertEqual(fuzzy_options("A", self.MAKES), ["Audi", "Honda", "Hyundai", "Mazda", "Toyota"])

    def test_limit(self):
        self.assertEqual(fuzzy_options("a", self.MAKES, limit=2), ["Audi", "Honda"])


if __name__ == "__main__":
    unittest.main()
