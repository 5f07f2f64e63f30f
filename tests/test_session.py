from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from uvccam.events import ERROR_INVALID_MODE, ERROR_NOT_RUNNING, ERROR_TIMELAPSE_FREQUENCY, CaptureEvent
from uvccam.session import CaptureSession, open_session


def open_with(backend, registry, options) -> CaptureSession | None:
    return open_session(
        options,
        runner_factory=backend.runner_factory,
        monitor_factory=backend.monitor_factory,
        registry=registry,
    )


def record_all(session: CaptureSession, events: List[CaptureEvent]) -> None:
    for kind in ("start", "read", "stop", "exit"):
        session.on(kind, events.append)


@pytest.mark.parametrize("options", [{"mode": "photo"}, {"output": "./photo/image.jpg"}, {}])
def test_missing_required_options_fail_without_side_effects(
    backend, registry, tmp_path: Path, monkeypatch, options
) -> None:
    monkeypatch.chdir(tmp_path)

    assert open_with(backend, registry, options) is None
    assert list(tmp_path.iterdir()) == []
    assert backend.runners == []


def test_unusable_resolution_falls_back_to_defaults(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    session = open_with(backend, registry, {"mode": "photo", "output": "./a/b.jpg", "width": "wide", "height": 0})

    assert session is not None
    assert (session.get("width"), session.get("height")) == (640, 480)
    assert (tmp_path / "a").is_dir()


def test_unparsable_timeout_fails_construction(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert open_with(backend, registry, {"mode": "photo", "output": "./a/b.jpg", "timeout": "soon"}) is None
    assert not (tmp_path / "a").exists()


def test_construction_prepares_output_directory(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    session = open_with(backend, registry, {"mode": "photo", "output": "./photo/image.jpg"})

    assert session is not None
    assert (tmp_path / "photo").is_dir()
    assert session.directory == "./photo/"
    assert session.filename == "image.jpg"


def test_photo_scenario(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "photo", "output": "./photo/image.jpg", "timeout": 0})
    assert session is not None
    record_all(session, events)

    assert session.start()
    assert session.is_running
    backend.monitor.notify("rename", "image.jpg")
    backend.runner.finish()

    assert [(e.kind, e.error, e.filename) for e in events] == [
        ("start", None, None),
        ("read", None, "image.jpg"),
        ("exit", None, None),
    ]
    assert events[0].timestamp <= events[1].timestamp <= events[2].timestamp
    assert not session.is_running
    assert not registry.is_running


def test_timelapse_without_frequency_scenario(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "timelapse", "output": "./tl/a.jpg"})
    assert session is not None
    record_all(session, events)

    assert not session.start()

    assert [(e.kind, e.error) for e in events] == [("start", ERROR_TIMELAPSE_FREQUENCY)]
    assert backend.runners == []
    assert not registry.is_running


def test_stop_when_idle_scenario(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "photo", "output": "a.jpg"})
    assert session is not None
    record_all(session, events)

    assert not session.stop()
    assert [(e.kind, e.error) for e in events] == [("stop", ERROR_NOT_RUNNING)]


def test_video_scenario(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "video", "output": "./v.mp4"})
    assert session is not None
    record_all(session, events)

    assert not session.start()
    assert [(e.kind, e.error) for e in events] == [("start", ERROR_INVALID_MODE)]
    assert backend.runners == []


def test_only_one_session_runs_at_a_time(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    first = open_with(backend, registry, {"mode": "photo", "output": "./one/a.jpg"})
    second = open_with(backend, registry, {"mode": "photo", "output": "./two/b.jpg"})
    assert first is not None and second is not None

    assert first.start()
    assert not second.start()
    assert first.is_running and not second.is_running
    assert len(backend.runners) == 1

    backend.runner.finish()
    assert second.start()


def test_raspicam_options_are_translated(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    session = open_with(
        backend,
        registry,
        {
            "mode": "photo",
            "output": "./photo/image.jpg",
            "encoding": "jpg",
            "emulateraspicam": "yes",
            "timeout": 0,
            "w": 1280,
            "ISO": 100,
            "v": True,
        },
    )
    assert session is not None

    assert session.get("width") == 1280
    assert session.get("emulateraspicam") is None
    assert session.get("ISO") is None

    session.start()
    assert backend.runner.arguments == [
        "-output./photo/image.jpg",
        "-width1280",
        "-height480",
        "-timeout0",
        "-encodingjpg",
        "-verbose",
    ]


def test_setting_output_rederives_paths(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    session = open_with(backend, registry, {"mode": "photo", "output": "./photo/image.jpg"})
    assert session is not None

    session.set("output", "./other/shot.jpg")
    session.set("quality", 75)

    assert session.get("output") == "./other/shot.jpg"
    assert session.get("quality") == 75
    assert session.paths.directory + session.paths.filename == "./other/shot.jpg"

    session.start()
    assert backend.monitor.directory == "./other/"


def test_stop_running_session(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "timelapse", "output": "./tl/a.jpg", "timelapse": 2000})
    assert session is not None
    record_all(session, events)

    session.start()
    backend.monitor.notify("rename", "a.jpg")
    assert session.stop()

    assert [e.kind for e in events] == ["start", "read", "stop"]
    assert backend.runner.killed
    assert not session.is_running


def test_listener_may_stop_session_from_read_event(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "timelapse", "output": "./tl/a.jpg", "timelapse": 2000})
    assert session is not None
    record_all(session, events)
    session.on("read", lambda event: session.stop())

    session.start()
    monitor = backend.monitor
    monitor.notify("rename", "a.jpg")
    monitor.notify("rename", "b.jpg")

    assert [e.kind for e in events] == ["start", "read", "stop"]


def test_exit_handler_can_start_next_capture(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    events: List[CaptureEvent] = []
    session = open_with(backend, registry, {"mode": "photo", "output": "./photo/image.jpg"})
    assert session is not None
    record_all(session, events)
    session.on("exit", lambda event: session.start() if len(backend.runners) < 2 else None)

    session.start()
    backend.runner.finish()
    second_monitor = backend.monitor
    second_monitor.notify("rename", "image.jpg")

    assert len(backend.runners) == 2
    assert not second_monitor.closed
    assert [e.kind for e in events] == ["start", "exit", "start", "read"]
    assert session.is_running


def test_set_accepts_string_values(backend, registry, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    session = open_with(backend, registry, {"mode": "photo", "output": "./photo/image.jpg"})
    assert session is not None

    session.set("timeout", "20000")
    session.set("width", "800")
    session.set("height", "tall")

    assert session.get("timeout") == 9999
    assert session.get("width") == 800
    assert session.get("height") == 480

    session.start()
    assert backend.runner.arguments[:4] == ["-output./photo/image.jpg", "-width800", "-height480", "-timeout9999"]
