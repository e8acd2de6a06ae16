"""
UULE location token, the value of the `UULE` cookie Google reads to localize
results. We emit the ASCII flavour: "a+" followed by the base64 of a protobuf
text message:

    role: CURRENT_LOCATION
    producer: DEVICE_LOCATION
    radius: 65000
    latlng <
      latitude_e7: 407127760
      longitude_e7: -740059740
    >

No timestamp is included so the token is a pure function of the coordinate.
"""
from __future__ import annotations
import base64
import re
from ..models import Coordinate

PREFIX = "a+"
RADIUS = 65000

_E7_RE = re.compile(r"(latitude|longitude)_e7:\s*(-?\d+)")


def _e7(value: float) -> int:
    return int(round(value * 1e7))


def encode(coordinate: Coordinate) -> str:
    text = (
        "role: CURRENT_LOCATION\n"
        "producer: DEVICE_LOCATION\n"
        f"radius: {RADIUS}\n"
        "latlng <\n"
        f"  latitude_e7: {_e7(coordinate.lat)}\n"
        f"  longitude_e7: {_e7(coordinate.lng)}\n"
        ">"
    )
    return PREFIX + base64.b64encode(text.encode("ascii")).decode("ascii")


def decode(token: str) -> Coordinate:
    if not token.startswith(PREFIX):
        raise ValueError("not an ASCII UULE token")
    text = base64.b64decode(token[len(PREFIX):]).decode("ascii")
    found = dict(_E7_RE.findall(text))
    if "latitude" not in found or "longitude" not in found:
        raise ValueError("UULE token carries no latlng")
    return Coordinate(lat=int(found["latitude"]) / 1e7, lng=int(found["longitude"]) / 1e7)
