"""Pure helper tests for the Streamlit page."""

from datetime import datetime
from pathlib import Path
import json
import sys

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shorts_studio.models import HistoryItem, SeoContent  # noqa: E402
from streamlit_app import (  # noqa: E402
    _chips_html,
    _history_export,
    _pretty_json,
    _scene_label,
    _slug,
)


def test_scene_label_uses_number_and_timestamp():
    assert _scene_label({"scene": 3, "scene_timestamp": "0:10-0:15"}, 0) == "Scene 3 (0:10-0:15)"
    assert _scene_label({}, 1) == "Scene 2"


def test_pretty_json_leaves_invalid_text_alone():
    assert _pretty_json('[{"scene":1}]') == '[\n  {\n    "scene": 1\n  }\n]'
    assert _pretty_json("[{broken") == "[{broken"


def test_slug_and_chips_escape():
    assert _slug("The Last Pixel: Reboot!") == "the-last-pixel-reboot"
    assert _slug("???") == "script"
    assert _chips_html(["<b>cats</b>"]) == "<span class='chip'>&lt;b&gt;cats&lt;/b&gt;</span>"


def test_history_export_bundles_idea_scenes_and_seo(idea):
    item = HistoryItem(
        idea=idea,
        final_script='[{"scene": 1, "scene_timestamp": "0:00-0:05"}]',
        seo=SeoContent(title="T", description="D", tags=["#a"]),
        created_at=datetime(2026, 10, 19, 9, 30, 0),
    )

    payload = json.loads(_history_export(item))

    assert payload["idea"]["title"] == "The Last Pixel"
    assert payload["idea"]["genre"] == "Sci-Fi"
    assert payload["scenes"][0]["scene_timestamp"] == "0:00-0:05"
    assert payload["seo"]["tags"] == ["#a"]
    assert payload["created_at"] == "2026-10-19T09:30:00"
