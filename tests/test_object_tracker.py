import numpy as np
import pytest

from blobtrack.core.contracts import Blob, BoundingBox, MotionModelType, TrackerConfig
from blobtrack.tracking.object_tracker import MultiObjectTracker


def blob(x: float, y: float, size: float = 10.0) -> Blob:
    half = size / 2.0
    return Blob(centroid=(x, y), bounding_box=BoundingBox(x - half, y - half, size, size))


def make_tracker(frame_size=(640, 480), **overrides) -> MultiObjectTracker:
    return MultiObjectTracker(frame_size, TrackerConfig(**overrides))


def test_track_birth() -> None:
    tracker = make_tracker()

    result = tracker.update([blob(100, 100), blob(300, 100), blob(500, 400)])

    assert tracker.active_track_count == 3
    assert result.new_track_ids == [1, 2, 3]
    assert result.outputs == []
    for track in tracker.tracks:
        assert track.lifetime == 1
        assert track.missed_frames == 0
        assert len(track.trajectory) == 1


def test_track_death_after_missed_frame_threshold() -> None:
    tracker = make_tracker(missed_frames_threshold=10)
    tracker.update([blob(100, 100)])

    for _ in range(10):
        result = tracker.update([])
        assert result.lost_track_ids == []
    assert tracker.get_track(1).missed_frames == 10

    result = tracker.update([])

    assert result.lost_track_ids == [1]
    assert tracker.get_track(1) is None
    assert tracker.active_track_count == 0


def test_maturation_gate() -> None:
    tracker = make_tracker(maturation_threshold=20)

    for frame in range(1, 22):
        result = tracker.update([blob(100, 100)])
        track = tracker.get_track(1)
        assert track.lifetime == frame
        if frame <= 20:
            assert result.outputs == []

    assert result.output_ids == [1]
    assert result.outputs[0].position == pytest.approx((100.0, 100.0), abs=1e-6)
    assert len(result.outputs[0].trajectory) == 21


def test_distant_blob_is_gated_out() -> None:
    tracker = make_tracker(frame_size=(100, 100))
    tracker.update([blob(0, 0)])
    assert tracker.gate_distance == 100.0

    result = tracker.update([blob(200, 200)])

    first_track = tracker.get_track(1)
    assert first_track.missed_frames == 1
    assert first_track.last_measurement == (0.0, 0.0)
    assert first_track.position == pytest.approx((0.0, 0.0), abs=1e-6)
    assert result.new_track_ids == [2]
    assert tracker.get_track(2).last_measurement == (200.0, 200.0)


def test_gated_track_inside_blob_box_is_rescued() -> None:
    tracker = make_tracker(frame_size=(100, 100), distance_threshold_factor=0.01)
    tracker.update([blob(10, 10, size=4)])
    tracker.update([])
    assert tracker.get_track(1).missed_frames == 1

    occluder = Blob(centroid=(15.0, 15.0), bounding_box=BoundingBox(0.0, 0.0, 20.0, 20.0))
    result = tracker.update([occluder])

    track = tracker.get_track(1)
    assert track.missed_frames == 0
    assert track.last_measurement == (10.0, 10.0)
    assert track.position == pytest.approx((10.0, 10.0), abs=1e-6)
    # The occluding blob was never claimed, so it starts its own track
    assert result.new_track_ids == [2]


def test_track_hidden_in_shared_blob_survives() -> None:
    tracker = make_tracker()
    tracker.update([blob(100, 100), blob(130, 100)])

    shared = Blob(centroid=(130.0, 100.0), bounding_box=BoundingBox(90.0, 90.0, 50.0, 20.0))
    result = tracker.update([shared])

    assert result.new_track_ids == []
    assert tracker.get_track(1).missed_frames == 0
    assert tracker.get_track(1).last_measurement == (100.0, 100.0)
    assert tracker.get_track(2).last_measurement == (130.0, 100.0)


def test_ids_are_never_reused() -> None:
    tracker = make_tracker(missed_frames_threshold=0)
    tracker.update([blob(100, 100)])
    tracker.update([])
    assert tracker.active_track_count == 0

    result = tracker.update([blob(100, 100)])
    assert result.new_track_ids == [2]

    tracker.reset()
    result = tracker.update([blob(100, 100)])
    assert result.new_track_ids == [3]


def test_empty_frame_coasts_mature_tracks() -> None:
    tracker = make_tracker()
    for _ in range(22):
        tracker.update([blob(100, 100)])

    result = tracker.update([])

    assert result.output_ids == [1]
    assert result.outputs[0].position == pytest.approx((100.0, 100.0), abs=1e-6)
    track = tracker.get_track(1)
    assert track.missed_frames == 1
    assert track.lifetime == 23


def test_parallel_objects_keep_their_ids() -> None:
    tracker = make_tracker()

    for frame in range(30):
        a = (50.0 + 5 * frame, 100.0)
        b = (590.0 - 5 * frame, 300.0)
        result = tracker.update([blob(*a), blob(*b)])
        if frame > 0:
            assert result.new_track_ids == []
            assert result.lost_track_ids == []

    assert result.output_ids == [1, 2]
    assert tracker.get_track(1).last_measurement == a
    assert tracker.get_track(2).last_measurement == b


def test_output_trajectory_is_a_snapshot() -> None:
    tracker = make_tracker(maturation_threshold=0)
    result = tracker.update([blob(100, 100)])

    result.outputs[0].trajectory.append((0.0, 0.0))

    assert len(tracker.get_track(1).trajectory) == 1


def test_lifecycle_invariants_hold_on_random_input() -> None:
    rng = np.random.default_rng(3)
    tracker = make_tracker(maturation_threshold=5, missed_frames_threshold=3)
    last_new_id = 0

    for _ in range(200):
        count = int(rng.integers(0, 5))
        blobs = [blob(float(x), float(y)) for x, y in rng.uniform((0, 0), (640, 480), size=(count, 2))]
        result = tracker.update(blobs)

        ids = [track.track_id for track in tracker.tracks]
        assert len(ids) == len(set(ids))
        assert not set(result.lost_track_ids) & set(ids)
        for new_id in result.new_track_ids:
            assert new_id > last_new_id
            last_new_id = new_id
        for track in tracker.tracks:
            assert track.missed_frames <= track.lifetime
            assert track.missed_frames <= 3
            assert len(track.trajectory) == track.lifetime
        for output in result.outputs:
            assert tracker.get_track(output.track_id).lifetime > 5


def test_constant_acceleration_tracker() -> None:
    tracker = make_tracker(motion_model=MotionModelType.CONSTANT_ACCELERATION)

    for frame in range(5):
        tracker.update([blob(100.0 + frame, 100.0)])

    (track,) = tracker.tracks
    assert track.estimator.dim_x == 6
    assert track.lifetime == 5


def test_invalid_frame_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        MultiObjectTracker((0, 480))


def test_invalid_config_is_rejected() -> None:
    with pytest.raises(ValueError):
        make_tracker(dt=0.0)
