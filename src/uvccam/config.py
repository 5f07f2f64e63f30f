from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

# Longest timeout uvccapture accepts, determined by testing.
INFINITY_MS = 9999

DEFAULT_WIDTH = 640
DEFAULT_HEIGHT = 480


class CaptureMode(str, Enum):
    PHOTO = "photo"
    TIMELAPSE = "timelapse"
    VIDEO = "video"


@dataclass(frozen=True)
class DerivedPaths:
    directory: str
    filename: str


def derive_paths(output: str) -> DerivedPaths:
    """Split ``output`` on its last separator, keeping the separator on the directory."""

    index = output.rfind("/")
    return DerivedPaths(directory=output[: index + 1] or "./", filename=output[index + 1 :])


def _dimension(value: object, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if number <= 0:
        logger.warning("Invalid %s %r, using %d", name, value, default)
        return default
    return number


def _optional_int(value: object) -> Optional[int]:
    return None if value is None else int(value)


def _optional_str(value: object) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class CaptureOptions:
    mode: str = CaptureMode.PHOTO.value
    output: str = ""
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    timeout: Optional[int] = None
    timelapse: Optional[int] = None
    encoding: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.normalize()

    def normalize(self) -> "CaptureOptions":
        self.mode = self.mode or CaptureMode.PHOTO.value
        self.width = _dimension(self.width, DEFAULT_WIDTH, "width")
        self.height = _dimension(self.height, DEFAULT_HEIGHT, "height")
        if self.timeout is not None:
            self.timeout = min(self.timeout, INFINITY_MS)
        return self

    def get(self, key: str) -> object:
        if key in _TYPED_FIELDS:
            return getattr(self, key)
        return self.extra.get(key)

    def set(self, key: str, value: object) -> None:
        """Assign an option by name. An unusable value for a typed field is ignored."""

        if key not in _TYPED_FIELDS:
            self.extra[key] = value
            return
        try:
            value = _COERCE[key](value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid %s value %r", key, value)
            return
        setattr(self, key, value)
        self.normalize()

    def flags(self) -> Dict[str, object]:
        """Every option that becomes a command-line flag, in invocation order."""

        ordered: Dict[str, object] = {
            "output": self.output,
            "width": self.width,
            "height": self.height,
            "timeout": self.timeout,
            "timelapse": self.timelapse,
            "encoding": self.encoding,
        }
        for key, value in self.extra.items():
            ordered[key] = value
        return {key: value for key, value in ordered.items() if value is not None}

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = dict(self.extra)
        data.update(
            mode=self.mode,
            output=self.output,
            width=self.width,
            height=self.height,
        )
        for key in ("timeout", "timelapse", "encoding"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "CaptureOptions":
        extra = {key: value for key, value in data.items() if key not in _TYPED_FIELDS}
        return cls(
            mode=str(data.get("mode") or CaptureMode.PHOTO.value),
            output=str(data.get("output", "")),
            width=_dimension(data.get("width"), DEFAULT_WIDTH, "width"),
            height=_dimension(data.get("height"), DEFAULT_HEIGHT, "height"),
            timeout=_optional_int(data.get("timeout")),
            timelapse=_optional_int(data.get("timelapse")),
            encoding=_optional_str(data.get("encoding")),
            extra=extra,
        )


_TYPED_FIELDS = frozenset(f.name for f in fields(CaptureOptions) if f.name != "extra")

# Converters applied by CaptureOptions.set, matching from_dict.
_COERCE: Dict[str, Callable[[object], object]] = {
    "mode": _optional_str,
    "output": str,
    "width": _optional_int,
    "height": _optional_int,
    "timeout": _optional_int,
    "timelapse": _optional_int,
    "encoding": _optional_str,
}


@dataclass
class PresetStore:
    presets: Dict[str, Dict[str, object]] = field(default_factory=dict)

    def register_preset(self, name: str, options: Mapping[str, object]) -> None:
        self.presets[name] = dict(options)

    def to_dict(self) -> Dict[str, object]:
        return {"presets": {name: dict(opts) for name, opts in self.presets.items()}}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "PresetStore":
        presets = data.get("presets", {})
        if not isinstance(presets, dict):
            raise ValueError("presets must be a mapping of name to options")
        return cls(presets={str(name): dict(opts) for name, opts in presets.items()})


class PresetRepository:
    """Persists named capture option presets to the filesystem."""

    def __init__(self, path: Optional[Path] = None) -> None:
        default_path = Path.home() / ".config" / "uvccam" / "presets.json"
        self.path = path or default_path

    def load(self) -> PresetStore:
        if not self.path.exists():
            return PresetStore()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Malformed preset file {self.path}: {exc}") from exc
        return PresetStore.from_dict(data)

    def save(self, store: PresetStore) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(store.to_dict(), indent=2)
        self.path.write_text(payload, encoding="utf-8")

    def get_preset(self, name: str) -> Dict[str, object]:
        presets = self.load().presets
        if name not in presets:
            raise KeyError(f"Unknown preset: {name}")
        return dict(presets[name])

    def save_preset(self, name: str, options: Mapping[str, object]) -> None:
        store = self.load()
        store.register_preset(name, options)
        self.save(store)
