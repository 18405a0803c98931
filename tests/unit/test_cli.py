import io
import json
import os
import sys
import tempfile
from pathlib import Path
import unittest
from unittest import mock

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import hbcr.__main__ as cli


_FIGHTER = {
    "classId": "fighter",
    "displayName": "Fighter",
    "levels": {
        "1": [{"type": "feature", "id": "fighter.second_wind", "name": "Second Wind"}],
        "2": [{"type": "asi_or_feat_gate"}],
    },
}


def _write_bundle(root: Path) -> None:
    (root / "class_progression").mkdir()
    (root / "class_progression" / "fighter.json").write_text(json.dumps(_FIGHTER), encoding="utf-8")
    (root / "classes.full.json").write_text(json.dumps([{"id": "fighter", "subclasses": []}]), encoding="utf-8")
    (root / "choices.json").write_text(
        json.dumps([{"ownerType": "class", "ownerId": "fighter", "level": 2, "pickType": "manoeuvre", "count": 2}]),
        encoding="utf-8",
    )


class CliTests(unittest.TestCase):
    def _run(self, tmp: str, build: dict, *extra: str) -> tuple[int, str, str]:
        build_path = Path(tmp) / "build.json"
        build_path.write_text(json.dumps(build), encoding="utf-8")
        stdout, stderr = io.StringIO(), io.StringIO()
        env = {"HBCR_DATA_DIR": tmp, "HBCR_DATA_URL": ""}
        with mock.patch.dict(os.environ, env, clear=False), mock.patch("sys.stdout", stdout), mock.patch(
            "sys.stderr", stderr
        ):
            code = cli.main(["resolve", str(build_path), *extra])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_resolve_prints_build_as_json(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _write_bundle(Path(tmp))
            code, out, _ = self._run(tmp, {"classes": [{"classId": "fighter", "level": 2}]})

        result = json.loads(out)
        self.assertEqual(0, code)
        self.assertEqual(2, result["totalLevel"])
        self.assertEqual(["fighter.second_wind"], [feature["id"] for feature in result["features"]])
        self.assertEqual(["fighter.feat_gate.2"], [pending["id"] for pending in result["pendingChoices"]])

    def test_resolve_timeline_with_steps(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _write_bundle(Path(tmp))
            build = {"timeline": [{"classId": "fighter"}, {"classId": "fighter"}], "selections": {"fighter.feat_gate.2": "tough"}}
            code, out, _ = self._run(tmp, build, "--steps")

        result = json.loads(out)
        self.assertEqual(0, code)
        self.assertEqual([], result["pendingChoices"])
        self.assertEqual("manoeuvres", result["steps"][0]["steps"][0]["kind"])
        self.assertEqual(2, result["steps"][0]["steps"][0]["need"])

    def test_invalid_build_file_reports_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, out, err = self._run(tmp, ["not", "an", "object"])

        self.assertEqual(1, code)
        self.assertEqual("", out)
        self.assertIn("Could not resolve build", err)
        self.assertNotIn("Traceback", err)


if __name__ == "__main__":
    unittest.main()
