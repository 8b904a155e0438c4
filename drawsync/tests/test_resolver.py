import random
import unittest

from drawsync.resolver import FALLBACK_SEGMENTS, TargetResolver
from drawsync.schemas import Prize


def _prizes(count: int):
    return [Prize(id=index + 1, name=f"Premio {index + 1}") for index in range(count)]


class TargetResolverTests(unittest.TestCase):
    def test_empty_segments_use_fallback(self) -> None:
        segments = TargetResolver.wheel_segments([])
        self.assertEqual(segments, list(FALLBACK_SEGMENTS))
        self.assertTrue(all(not prize.is_real for prize in segments))

    def test_segment_index_matches_first_id_or_defaults_to_zero(self) -> None:
        segments = _prizes(4)
        self.assertEqual(TargetResolver.segment_index(segments, Prize(id=3)), 2)
        self.assertEqual(TargetResolver.segment_index(segments, Prize(id=99)), 0)
        self.assertEqual(TargetResolver.segment_index(segments, None), 0)

    def test_rotation_without_jitter_centers_the_target(self) -> None:
        resolver = TargetResolver(whole_turns=6, jitter_ratio=0.0)
        target = resolver.next_rotation(_prizes(4), Prize(id=2))

        # step 90, center 135 -> 6 turns + 225
        self.assertEqual(target.segment_index, 1)
        self.assertAlmostEqual(target.rotation, 6 * 360 + 225)
        self.assertEqual(target.previous_rotation, 0.0)
        self.assertEqual(resolver.rotation, target.rotation)

    def test_consecutive_draws_rotate_forward_and_land_on_target(self) -> None:
        resolver = TargetResolver(whole_turns=1, jitter_ratio=0.15, rng=random.Random(7))
        rng = random.Random(11)
        previous = resolver.rotation
        for _ in range(200):
            segments = _prizes(rng.randint(1, 12))
            prize = rng.choice(segments)

            target = resolver.next_rotation(segments, prize)

            self.assertGreater(target.rotation, previous)
            self.assertEqual(target.previous_rotation, previous)
            self.assertEqual(
                TargetResolver.landing_index(target.rotation, len(segments)),
                segments.index(prize),
            )
            previous = target.rotation

    def test_jitter_stays_within_bound(self) -> None:
        segments = _prizes(8)
        step = 360 / len(segments)
        resolver = TargetResolver(whole_turns=2, jitter_ratio=0.15, rng=random.Random(3))
        for _ in range(100):
            before = resolver.rotation
            target = resolver.next_rotation(segments, segments[5])
            base = before - (before % 360)
            ideal = base + 2 * 360 + (360 - (5 * step + step / 2))
            self.assertLessEqual(abs(target.rotation - ideal), 0.15 * step)

    def test_unknown_target_lands_on_first_segment(self) -> None:
        resolver = TargetResolver(rng=random.Random(1))
        target = resolver.next_rotation(_prizes(5), Prize(id=42))
        self.assertEqual(target.segment_index, 0)
        self.assertEqual(TargetResolver.landing_index(target.rotation, 5), 0)

    def test_whole_turns_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            TargetResolver(whole_turns=0)


if __name__ == "__main__":
    unittest.main()
