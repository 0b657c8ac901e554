"""Landmark annotations of the MUCT face database."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from os import PathLike

_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _atof(text: str) -> float:
    """Parse the leading number of ``text``; text without one reads as 0."""
    match = _NUMBER.match(text)
    return float(match.group()) if match else 0.0


@dataclass
class MuctLandmark:
    """One annotated image: its file name, tag and landmark points."""

    filename: str
    tag: str
    points: list[tuple[float, float]] = field(default_factory=list)

    @classmethod
    def from_csv_line(cls, line: str) -> MuctLandmark | None:
        """Parse one CSV line.

        Returns ``None`` for mirrored images and for cameras ``d`` and ``e``,
        which are left out of the data set.
        """
        tokens = [token for token in line.split(",") if token]
        if len(tokens) < 2:
            raise ValueError(f"landmark line needs a filename and a tag: {line!r}")

        filename, tag, *coords = tokens
        if len(filename) >= 2 and filename[1] == "r":
            return None
        if len(filename) >= 4 and filename[-4] in ("e", "d"):
            return None

        if len(coords) % 2:
            raise ValueError(f"odd number of coordinates in line: {line!r}")
        values = [_atof(token) for token in coords]
        return cls(filename, tag, list(zip(values[0::2], values[1::2])))

    def __str__(self) -> str:
        body = "".join(f"[{x:g}, {y:g}], " for x, y in self.points)
        return f"{self.filename} {self.tag}\n[{body}]"


def read_csv(path: str | PathLike[str]) -> list[MuctLandmark]:
    """Read a landmark CSV file, keeping only complete, positive annotations."""
    with open(path, encoding="utf-8") as handle:
        next(handle, None)
        parsed = (
            MuctLandmark.from_csv_line(line.rstrip("\r\n"))
            for line in handle
            if line.strip()
        )
        landmarks = [landmark for landmark in parsed if landmark is not None]

    if not landmarks:
        raise ValueError(f"no usable landmarks in {path}")

    n = max(len(landmark.points) for landmark in landmarks)
    return [
        landmark
        for landmark in landmarks
        if len(landmark.points) == n
        and all(x > 0 and y > 0 for x, y in landmark.points)
    ]