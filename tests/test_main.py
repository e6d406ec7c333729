import json
import sys

import pytest
from loguru import logger

from main import TrackingApp, main, parse_blob, read_frames


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logger.remove()
    logger.add(lambda message: sys.stderr.write(message), level="DEBUG")


def write_frames(path, records) -> None:
    path.write_text("\n".join(json.dumps(r) for r in records) + "\n")


def moving_blob(frame: int) -> dict:
    x = 100.0 + 4 * frame
    return {"centroid": [x, 100.0], "bbox": [x - 5, 95.0, 10.0, 10.0]}


def test_parse_blob() -> None:
    blob = parse_blob({"centroid": [3, 4], "bbox": [1, 2, 5, 6]})

    assert blob.centroid == (3.0, 4.0)
    assert blob.bounding_box.width == 5.0
    assert blob.contour is None


def test_bad_lines_are_skipped(tmp_path) -> None:
    path = tmp_path / "frames.jsonl"
    path.write_text('{"blobs": []}\nnot json\n\n[1, 2]\n{"blobs": []}\n')

    assert len(list(read_frames(path))) == 2


def test_app_replays_every_frame(tmp_path) -> None:
    path = tmp_path / "frames.jsonl"
    write_frames(path, [{"blobs": [moving_blob(i)]} for i in range(25)] + [{"blobs": []}])

    app = TrackingApp(frame_width=320, frame_height=240)

    assert app.run(path) == 26
    assert app.pipeline.tracker.frame_size == (320, 240)
    assert app.pipeline.stats.tracks_created == 1


def test_malformed_blob_is_ignored() -> None:
    app = TrackingApp()

    result = app.process_record({"blobs": [{"centroid": [1, 2]}, moving_blob(0)]})

    assert result.new_track_ids == [1]


def test_contour_records() -> None:
    app = TrackingApp()

    result = app.process_record({"contours": [[[0, 0], [10, 0], [10, 10], [0, 10]]]})

    assert result.new_track_ids == [1]


def test_main_exit_codes(tmp_path) -> None:
    path = tmp_path / "frames.jsonl"
    write_frames(path, [{"blobs": [moving_blob(i)]} for i in range(3)])

    assert main([str(path), "--log-level", "WARNING"]) == 0
    assert main([str(tmp_path / "missing.jsonl"), "--log-level", "WARNING"]) == 1


def test_main_reads_config_file(tmp_path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("frame:\n  width: 100\n  height: 100\nlogging:\n  level: ERROR\n")
    path = tmp_path / "frames.jsonl"
    write_frames(path, [{"blobs": [moving_blob(0)]}])

    assert main([str(path), "--config", str(config)]) == 0


@pytest.mark.parametrize(
    "record",
    [
        {"contours": [[[0, 0], [10]]]},
        {"contours": [[], [[1, 2, 3]]]},
        {"contours": None},
        {"contours": "square"},
        {"blobs": None},
        {"blobs": {"centroid": [1, 2]}},
        {"blobs": ["not a blob", 7]},
    ],
)
def test_malformed_records_yield_empty_frames(record) -> None:
    app = TrackingApp()

    result = app.process_record(record)

    assert result.new_track_ids == []
    assert app.pipeline.stats.frames_processed == 1


def test_bad_contour_does_not_drop_its_neighbours() -> None:
    app = TrackingApp()

    result = app.process_record({"contours": [[[0, 0], [10]], [[0, 0], [10, 0], [10, 10], [0, 10]]]})

    assert result.new_track_ids == [1]


def test_replay_continues_past_malformed_records(tmp_path) -> None:
    path = tmp_path / "frames.jsonl"
    write_frames(
        path,
        [
            {"blobs": [moving_blob(0)]},
            {"contours": [[[0, 0], [10]]]},
            {"blobs": None},
            {"blobs": [moving_blob(3)]},
        ],
    )

    assert TrackingApp().run(path) == 4


def test_invalid_config_value_exits_with_error(tmp_path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("estimator:\n  dt: -1.0\n")
    path = tmp_path / "frames.jsonl"
    write_frames(path, [{"blobs": [moving_blob(0)]}])

    assert main([str(path), "--config", str(config), "--log-level", "ERROR"]) == 1
