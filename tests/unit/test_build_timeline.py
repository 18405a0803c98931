import sys
from pathlib import Path
import unittest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from hbcr.domain.models.resolution import ClassEntry
from hbcr.domain.services.build_timeline import TimelineEntry, class_entries_from_timeline, walk_timeline


class BuildTimelineTests(unittest.TestCase):
    def test_folds_levels_into_one_entry_per_class(self) -> None:
        timeline = [
            {"classId": "fighter"},
            {"classId": "wizard"},
            {"classId": "fighter"},
            {"classId": "fighter", "subclassId": "champion"},
            {"classId": "wizard", "subclassId": "evocation"},
        ]

        entries = class_entries_from_timeline(timeline)

        self.assertEqual(
            (ClassEntry("fighter", 3, "champion"), ClassEntry("wizard", 2, "evocation")),
            entries,
        )

    def test_subclass_carries_forward_per_class(self) -> None:
        timeline = [
            TimelineEntry(class_id="cleric", subclass_id="life"),
            TimelineEntry(class_id="rogue"),
            TimelineEntry(class_id="cleric"),
        ]

        walked = walk_timeline(timeline)

        self.assertEqual([1, 1, 2], [level.class_level for level in walked])
        self.assertEqual(["life", None, "life"], [level.subclass_id for level in walked])
        self.assertEqual([1, 2, 3], [level.character_level for level in walked])

    def test_blank_entries_are_skipped_and_timeline_capped(self) -> None:
        timeline = [{"classId": ""}] + [{"classId": "monk"}] * 20

        walked = walk_timeline(timeline)

        self.assertEqual(11, len(walked))
        self.assertEqual(2, walked[0].character_level)
        self.assertEqual((ClassEntry("monk", 11),), class_entries_from_timeline(timeline))

    def test_picks_are_kept_on_entries(self) -> None:
        entry = TimelineEntry.from_dict({"class_id": "wizard", "picks": {"spells": ["shield"]}})

        self.assertEqual("wizard", entry.class_id)
        self.assertEqual(["shield"], entry.picks["spells"])


if __name__ == "__main__":
    unittest.main()
