import unittest
from unittest.mock import patch

from sqlalchemy import select

from ledger_fixtures import make_session_factory, make_user
from monety.db.models import Deposit
from monety.services.deposit_service import confirm_deposit, create_deposit
from monety.services.payment_gateway import PIX_CODE_PREFIX, PaymentGatewayError, PixCharge


class DepositManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()

    def test_below_minimum_is_refused(self) -> None:
        user = make_user(self.db)

        result = create_deposit(self.db, user.id, 20)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "below_minimum")
        self.assertEqual(self.db.scalars(select(Deposit)).all(), [])

    def test_non_finite_amount_is_invalid(self) -> None:
        user = make_user(self.db)

        for amount in (float("inf"), float("nan")):
            with self.subTest(amount=amount):
                result = create_deposit(self.db, user.id, amount)
                self.assertFalse(result.success)
                self.assertEqual(result.error_code, "invalid_amount")
        self.assertEqual(self.db.scalars(select(Deposit)).all(), [])

    def test_create_records_pending_deposit_without_crediting(self) -> None:
        user = make_user(self.db, balance=2.0)

        result = create_deposit(self.db, user.id, 50)

        self.assertTrue(result.success)
        deposit = result.data
        self.assertEqual(deposit.status, "pending")
        self.assertEqual(deposit.amount, 50.0)
        self.assertTrue(deposit.pix_code.startswith(PIX_CODE_PREFIX))
        self.assertIsNone(deposit.confirmed_at)
        self.assertEqual(user.balance, 2.0)

    def test_confirmation_credits_once(self) -> None:
        user = make_user(self.db, balance=0.0, spins=0)
        deposit_id = create_deposit(self.db, user.id, 50).data.id

        first = confirm_deposit(self.db, deposit_id)
        second = confirm_deposit(self.db, deposit_id)

        self.assertEqual(first.data.status, "confirmed")
        self.assertIsNotNone(first.data.confirmed_at)
        self.assertTrue(second.success)
        self.assertIsNone(second.data)
        self.db.refresh(user)
        self.assertEqual(user.balance, 50.0)
        self.assertEqual(user.roulette_spins, 1)
        self.assertEqual(user.total_earnings, 0.0)

    def test_unknown_deposit_confirmation_is_a_no_op(self) -> None:
        result = confirm_deposit(self.db, "f" * 32)

        self.assertTrue(result.success)
        self.assertIsNone(result.data)

    def test_gateway_charge_is_stored(self) -> None:
        user = make_user(self.db)

        with patch(
            "monety.services.deposit_service.request_pix_charge",
            return_value=PixCharge(pix_code="PIXCODE", gateway_id="dep-9"),
        ) as charge:
            result = create_deposit(self.db, user.id, 30)

        charge.assert_called_once_with(user.id, user.email, 30.0)
        self.assertEqual(result.data.pix_code, "PIXCODE")
        self.assertEqual(result.data.gateway_id, "dep-9")

    def test_gateway_failure_writes_nothing(self) -> None:
        user = make_user(self.db)

        with patch(
            "monety.services.deposit_service.request_pix_charge",
            side_effect=PaymentGatewayError("PIX code not returned by payment provider"),
        ):
            result = create_deposit(self.db, user.id, 50)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "gateway_error")
        self.assertEqual(self.db.scalars(select(Deposit)).all(), [])


if __name__ == "__main__":
    unittest.main()
