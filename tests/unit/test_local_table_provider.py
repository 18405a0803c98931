import json
import sys
import tempfile
from pathlib import Path
import unittest
import os
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from hbcr.infrastructure.local_table_provider import LocalTableProvider, normalize_class_id
from hbcr.infrastructure.remote_table_client import RemoteTableClient
from hbcr.infrastructure.table_provider_factory import create_table_client


class LocalTableProviderTests(unittest.TestCase):
    def test_reads_class_progression_by_normalized_id(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            folder = Path(tmp) / "class_progression"
            folder.mkdir()
            (folder / "bard.json").write_text(json.dumps({"classId": "bard", "levels": {}}), encoding="utf-8")

            provider = LocalTableProvider(root_dir=tmp)

            self.assertEqual("bard", provider.get_class_progression("BARD")["classId"])

    def test_list_exports_are_wrapped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "classes.full.json").write_text(json.dumps([{"id": "bard"}]), encoding="utf-8")
            (Path(tmp) / "choices.json").write_text(json.dumps([{"ownerId": "bard"}]), encoding="utf-8")

            provider = LocalTableProvider(root_dir=tmp)

            self.assertEqual([{"id": "bard"}], provider.get_classes_full()["classes"])
            self.assertEqual([{"ownerId": "bard"}], provider.get_choices()["choices"])

    def test_missing_files_raise_file_not_found(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            provider = LocalTableProvider(root_dir=tmp)
            with self.assertRaises(FileNotFoundError):
                provider.get_choices()
            with self.assertRaises(FileNotFoundError):
                provider.get_class_progression("bard")

    def test_non_object_progression_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            folder = Path(tmp) / "class_progression"
            folder.mkdir()
            (folder / "bard.json").write_text("[]", encoding="utf-8")

            with self.assertRaises(ValueError):
                LocalTableProvider(root_dir=tmp).get_class_progression("bard")

    def test_normalize_class_id_rejects_invalid_ids(self) -> None:
        self.assertEqual("eldritch-knight", normalize_class_id(" Eldritch-Knight "))
        for bad in ("", "a/b", "wizard.json"):
            with self.assertRaises(ValueError):
                normalize_class_id(bad)


class TableProviderFactoryTests(unittest.TestCase):
    def test_local_directory_by_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with mock.patch.dict(os.environ, {"HBCR_DATA_DIR": tmp, "HBCR_DATA_URL": ""}, clear=False):
                client = create_table_client()

            self.assertIsInstance(client, LocalTableProvider)
            self.assertEqual(Path(tmp), client.root_dir)

    def test_data_url_selects_remote_client(self) -> None:
        with mock.patch.dict(os.environ, {"HBCR_DATA_URL": "http://localhost:8765"}, clear=False):
            client = create_table_client()

        self.assertIsInstance(client, RemoteTableClient)
        self.assertEqual("http://localhost:8765", str(client.client.base_url).rstrip("/"))
        client.close()


if __name__ == "__main__":
    unittest.main()
