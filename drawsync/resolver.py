from __future__ import annotations

import logging
import math
import random
from typing import List, Optional, Sequence

from .schemas import Prize
from .types import RotationTarget

logger = logging.getLogger("drawsync.resolver")

FULL_TURN = 360.0

FALLBACK_SEGMENTS: Sequence[Prize] = (
    Prize(id=-1, name="Ruleta lista"),
    Prize(id=-2, name="En espera"),
    Prize(id=-3, name="Cargando premios"),
    Prize(id=-4, name="Fundasen"),
)


class TargetResolver:
    """Maps a target prize onto a wedge and an ever-growing wheel rotation.

    Segment ``i`` spans ``[i*step, (i+1)*step)`` degrees clockwise from the
    pointer; rotating the wheel by ``360 - center`` brings that wedge's
    center under the pointer.
    """

    def __init__(
        self,
        whole_turns: int = 6,
        jitter_ratio: float = 0.15,
        rng: Optional[random.Random] = None,
        initial_rotation: float = 0.0,
    ) -> None:
        if whole_turns < 1:
            raise ValueError("whole_turns must be at least 1")
        self._whole_turns = whole_turns
        self._jitter_ratio = jitter_ratio
        self._rng = rng or random.Random()
        self._rotation = float(initial_rotation)

    @property
    def rotation(self) -> float:
        return self._rotation

    @staticmethod
    def wheel_segments(prizes: Sequence[Prize]) -> List[Prize]:
        if not prizes:
            return list(FALLBACK_SEGMENTS)
        return list(prizes)

    @staticmethod
    def segment_index(segments: Sequence[Prize], target: Optional[Prize]) -> int:
        if target is None:
            return 0
        for index, segment in enumerate(segments):
            if segment.id == target.id:
                return index
        logger.info("Target prize %s not among %d segments; landing on the first", target.id, len(segments))
        return 0

    def next_rotation(self, segments: Sequence[Prize], target: Optional[Prize]) -> RotationTarget:
        segments = self.wheel_segments(segments)
        step = FULL_TURN / len(segments)
        index = self.segment_index(segments, target)
        center = index * step + step / 2

        wobble = step * self._jitter_ratio
        jitter = self._rng.uniform(-wobble / 2, wobble / 2)

        previous = self._rotation
        # Start from the last whole turn so the stop angle stays exact modulo 360.
        base = previous - math.fmod(previous, FULL_TURN)
        rotation = base + self._whole_turns * FULL_TURN + (FULL_TURN - center) + jitter

        self._rotation = rotation
        return RotationTarget(segment_index=index, rotation=rotation, previous_rotation=previous)

    @staticmethod
    def landing_index(rotation: float, segment_count: int) -> int:
        """Index of the wedge under the pointer after rotating by ``rotation``."""
        if segment_count <= 0:
            raise ValueError("segment_count must be positive")
        step = FULL_TURN / segment_count
        pointer = (FULL_TURN - math.fmod(rotation, FULL_TURN)) % FULL_TURN
        return int(pointer // step) % segment_count
