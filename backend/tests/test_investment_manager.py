import unittest

from sqlalchemy import select

from ledger_fixtures import hours_after, ledger_time, make_session_factory, make_user
from monety.db.models import Investment, Referral
from monety.services.investment_service import get_product, list_products, purchase_product
from monety.services.referral_service import link_referral


class InvestmentManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.now = ledger_time(2026, 3, 2, 11)
        self.bronze = get_product(1)

    def tearDown(self) -> None:
        self.db.close()

    def test_catalog_lists_seven_products(self) -> None:
        products = list_products()
        self.assertEqual([product.id for product in products], [1, 2, 3, 4, 5, 6, 7])
        self.assertEqual(get_product(7).price, 2500.0)
        self.assertIsNone(get_product(99))

    def test_purchase_fails_without_enough_balance(self) -> None:
        user = make_user(self.db, balance=29.99)

        result = purchase_product(self.db, user.id, self.bronze, self.now)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "insufficient_balance")
        self.assertEqual(user.balance, 29.99)
        self.assertEqual(self.db.scalars(select(Investment)).all(), [])

    def test_purchase_debits_price_and_opens_investment(self) -> None:
        user = make_user(self.db, balance=100.0)

        result = purchase_product(self.db, user.id, self.bronze, self.now)

        self.assertTrue(result.success)
        investment = result.data
        self.assertEqual(user.balance, 70.0)
        self.assertEqual(investment.amount, 30.0)
        self.assertEqual(investment.daily_return, 6.0)
        self.assertEqual(investment.total_days, 60)
        self.assertEqual(investment.remaining_days, 60)
        self.assertEqual(investment.start_date, investment.last_claim_date)
        self.assertEqual(investment.status, "active")

    def test_first_purchase_of_referral_grants_inviter_one_spin(self) -> None:
        inviter = make_user(self.db, name="Ana")
        invitee = make_user(self.db, balance=200.0, name="Bruno")
        link_referral(self.db, inviter, invitee, self.now)
        self.db.commit()

        first = purchase_product(self.db, invitee.id, self.bronze, self.now)
        second = purchase_product(self.db, invitee.id, self.bronze, hours_after(self.now, 1))

        self.assertTrue(first.success)
        self.assertTrue(second.success)
        referral = self.db.scalar(select(Referral).where(Referral.referred_user_id == invitee.id))
        self.assertTrue(referral.has_purchased)
        self.assertEqual(inviter.roulette_spins, 1)
        self.assertEqual(invitee.roulette_spins, 0)

    def test_purchase_without_inviter_grants_nothing(self) -> None:
        bystander = make_user(self.db)
        buyer = make_user(self.db, balance=50.0)

        purchase_product(self.db, buyer.id, self.bronze, self.now)

        self.assertEqual(bystander.roulette_spins, 0)
        self.assertEqual(buyer.roulette_spins, 0)

    def test_failed_purchase_does_not_flip_referral(self) -> None:
        inviter = make_user(self.db)
        invitee = make_user(self.db, balance=5.0)
        link_referral(self.db, inviter, invitee, self.now)
        self.db.commit()

        result = purchase_product(self.db, invitee.id, self.bronze, self.now)

        self.assertFalse(result.success)
        referral = self.db.scalar(select(Referral).where(Referral.referred_user_id == invitee.id))
        self.assertFalse(referral.has_purchased)
        self.assertEqual(inviter.roulette_spins, 0)

    def test_unknown_user_fails(self) -> None:
        result = purchase_product(self.db, "missing", self.bronze, self.now)
        self.assertEqual(result.error_code, "user_not_found")


if __name__ == "__main__":
    unittest.main()
