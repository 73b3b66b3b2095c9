from collections import Counter
import random
import unittest

from ledger_fixtures import make_session_factory, make_user
from monety.services.wheel_service import PRIZE_TABLE, draw_prize, spin_wheel, wheel_segments


class _FixedRoll:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


class PrizeWheelTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()

    def test_weights_sum_to_one_hundred(self) -> None:
        self.assertEqual(sum(weight for _, weight in PRIZE_TABLE), 100)
        self.assertEqual(len(wheel_segments()), 8)

    def test_cumulative_boundaries(self) -> None:
        self.assertEqual(draw_prize(_FixedRoll(0.0)), 1.0)
        self.assertEqual(draw_prize(_FixedRoll(0.3499)), 1.0)
        self.assertEqual(draw_prize(_FixedRoll(0.36)), 5.0)
        self.assertEqual(draw_prize(_FixedRoll(0.66)), 10.0)
        self.assertEqual(draw_prize(_FixedRoll(0.86)), 15.0)
        self.assertEqual(draw_prize(_FixedRoll(0.96)), 20.0)
        self.assertEqual(draw_prize(_FixedRoll(0.999999)), 20.0)

    def test_distribution_follows_weights(self) -> None:
        rng = random.Random(20240601)
        draws = 50_000
        counts = Counter(draw_prize(rng) for _ in range(draws))

        self.assertEqual(set(counts) - {1.0, 5.0, 10.0, 15.0, 20.0}, set())
        for prize, weight in PRIZE_TABLE:
            if weight == 0:
                self.assertNotIn(prize, counts)
                continue
            self.assertAlmostEqual(counts[prize] / draws, weight / 100, delta=0.01)

    def test_spin_without_credit_fails(self) -> None:
        user = make_user(self.db, balance=4.0, spins=0)

        result = spin_wheel(self.db, user.id, random.Random(1))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "no_spins")
        self.assertEqual(user.balance, 4.0)
        self.assertEqual(user.roulette_spins, 0)

    def test_spin_consumes_credit_and_pays_prize(self) -> None:
        user = make_user(self.db, balance=4.0, spins=2)

        result = spin_wheel(self.db, user.id, _FixedRoll(0.70))

        self.assertTrue(result.success)
        self.assertEqual(result.data, 10.0)
        self.assertEqual(user.roulette_spins, 1)
        self.assertEqual(user.balance, 14.0)
        self.assertEqual(user.total_earnings, 10.0)
        self.assertEqual(user.today_earnings, 10.0)


if __name__ == "__main__":
    unittest.main()
