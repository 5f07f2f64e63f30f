"""Translation of raspistill-style option names into uvccam's native vocabulary."""

from __future__ import annotations

import logging
from typing import Dict, Mapping

logger = logging.getLogger(__name__)

EMULATE_RASPICAM = "emulateraspicam"

# An empty target means uvccapture has no equivalent and the option is dropped.
RASPICAM_PARAMETERS: Dict[str, str] = {
    "w": "width",
    "h": "height",
    "q": "quality",
    "o": "output",
    "t": "timeout",
    "tl": "timelapse",
    "e": "encoding",
    "sh": "sharpness",
    "co": "contrast",
    "br": "brightness",
    "sa": "saturation",
    "dev": "device",
    "ISO": "",
    "ev": "",
    "ex": "",
    "awb": "",
    "ifx": "",
    "cfx": "",
    "mm": "",
    "rot": "",
    "roi": "",
    "ss": "",
    "drc": "",
    "th": "",
    "x": "",
    "l": "",
    "k": "",
    "s": "",
    "p": "",
    "op": "",
}

RASPICAM_FLAGS: Dict[str, str] = {
    "v": "verbose",
    "hf": "hflip",
    "vf": "vflip",
    "n": "nopreview",
    "r": "raw",
    "f": "fullscreen",
    "d": "demo",
    "st": "stats",
}


def translate_raspicam_options(options: Mapping[str, object]) -> Dict[str, object]:
    """Return a copy of ``options`` with raspistill names mapped to native ones.

    The ``emulateraspicam`` marker is always removed. Keys found in neither
    table pass through unchanged.
    """

    translated: Dict[str, object] = dict(options)
    translated.pop(EMULATE_RASPICAM, None)
    for key, value in list(translated.items()):
        if key in RASPICAM_PARAMETERS:
            target = RASPICAM_PARAMETERS[key]
            del translated[key]
            if target:
                translated[target] = value
            else:
                logger.debug("Dropping raspicam option %r: not supported by uvccapture", key)
        elif key in RASPICAM_FLAGS:
            del translated[key]
            translated[RASPICAM_FLAGS[key]] = value
    return translated


__all__ = [
    "EMULATE_RASPICAM",
    "RASPICAM_FLAGS",
    "RASPICAM_PARAMETERS",
    "translate_raspicam_options",
]
