# seed_scheduler/region.py
"""
Region comparability score used by the MinimalDistance strategy.

A region such as ``eu-west-1`` is split into a base name (``eu-1``) and an
orientation (``west``). Two regions are compared by the edit distance of
their base names, with a small correction for differing orientations and
differing provider types. Lower is better. The score is a heuristic, not a
metric in the strict sense.
"""
import re
from typing import Iterable, Optional, Tuple

from .errors import InvalidShootSpec

DEFAULT_ORIENTATIONS = ("north", "south", "east", "west", "central")

_REGION_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


class RegionTokenizer:
    """Splits region identifiers into ``(base_name, orientation)``.

    A token is an orientation when it equals one of ``orientations``, starts
    with one (``northeast1``, ``westeurope``) or ends with one
    (``europewest``). Only the first orientation found is taken; what is left
    of that token stays part of the base name.
    """

    def __init__(self, orientations: Iterable[str] = DEFAULT_ORIENTATIONS, separators: str = "-_",
                 case_sensitive: bool = False):
        self.case_sensitive = case_sensitive
        # longest first so "central" is never shadowed by a shorter prefix
        self.orientations = sorted({self._fold(o) for o in orientations}, key=len, reverse=True)
        self.separators = separators
        self._split_re = re.compile("[" + re.escape(separators) + "]+") if separators else None

    def _fold(self, value: str) -> str:
        return value if self.case_sensitive else value.lower()

    def _match(self, token: str) -> Optional[Tuple[str, str]]:
        for o in self.orientations:
            if token == o:
                return o, ""
            if token.startswith(o):
                return o, token[len(o):]
            if token.endswith(o):
                return o, token[:-len(o)]
        return None

    def split(self, region: str) -> Tuple[str, Optional[str]]:
        if not region or not _REGION_RE.match(region):
            raise InvalidShootSpec(f"malformed region {region!r}")
        region = self._fold(region)
        tokens = self._split_re.split(region) if self._split_re else [region]

        orientation = None
        base = []
        for token in tokens:
            if orientation is None:
                m = self._match(token)
                if m:
                    orientation, rest = m
                    if rest:
                        base.append(rest)
                    continue
            base.append(token)
        return "-".join(t for t in base if t), orientation

    @classmethod
    def from_settings(cls, region_settings) -> "RegionTokenizer":
        return cls(
            orientations=region_settings.orientations,
            separators=region_settings.separators,
            case_sensitive=region_settings.case_sensitive,
        )


DEFAULT_TOKENIZER = RegionTokenizer()


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                cur[j] = prev[j - 1]
            else:
                cur[j] = 1 + min(prev[j], cur[j - 1], prev[j - 1])
        prev = cur
    return prev[len(b)]


def orientation_correction(a: Optional[str], b: Optional[str]) -> int:
    if a is None and b is None:
        return 0
    if a is None or b is None:
        return 1
    return 0 if a == b else 2


def distance(shoot_region: str, seed_region: str, shoot_provider: str, seed_provider: str,
             tokenizer: RegionTokenizer = DEFAULT_TOKENIZER) -> int:
    shoot_base, shoot_orientation = tokenizer.split(shoot_region)
    seed_base, seed_orientation = tokenizer.split(seed_region)

    correction = orientation_correction(shoot_orientation, seed_orientation)
    if shoot_provider != seed_provider:
        correction += 2
    return 2 * levenshtein(shoot_base, seed_base) + correction
