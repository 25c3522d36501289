"""Stable domain identifier newtypes."""

from typing import NewType

ModeName = NewType("ModeName", str)
EncodedModes = NewType("EncodedModes", str)
