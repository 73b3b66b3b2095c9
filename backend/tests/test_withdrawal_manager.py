import unittest
from unittest.mock import patch

from sqlalchemy import select

from ledger_fixtures import ledger_time, make_session_factory, make_user
from monety.db.models import Withdrawal
from monety.services.payment_gateway import PaymentGatewayError
from monety.services.withdrawal_service import (
    quote_withdrawal,
    request_withdrawal,
    update_withdrawal_status,
    withdrawal_window_status,
)

OPEN_HOUR = ledger_time(2026, 3, 2, 10)


class WithdrawalManagerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()

    def _withdrawals(self) -> list[Withdrawal]:
        return self.db.scalars(select(Withdrawal)).all()

    def test_quote_splits_fee_from_gross(self) -> None:
        self.assertEqual(quote_withdrawal(35), {"amount": 35.0, "fee": 3.5, "net_amount": 31.5})
        self.assertEqual(quote_withdrawal(100), {"amount": 100.0, "fee": 10.0, "net_amount": 90.0})

    def test_window_uses_ledger_local_hour(self) -> None:
        self.assertTrue(withdrawal_window_status(ledger_time(2026, 3, 2, 9))["open"])
        self.assertTrue(withdrawal_window_status(ledger_time(2026, 3, 2, 16, 59))["open"])
        self.assertFalse(withdrawal_window_status(ledger_time(2026, 3, 2, 17))["open"])
        self.assertFalse(withdrawal_window_status(ledger_time(2026, 3, 2, 8, 59))["open"])

    def test_withdrawal_debits_gross_and_records_fee(self) -> None:
        user = make_user(self.db, balance=40.0)

        result = request_withdrawal(self.db, user.id, 35, "123.456.789-00", "cpf", OPEN_HOUR)

        self.assertTrue(result.success)
        withdrawal = result.data
        self.assertEqual(withdrawal.amount, 35.0)
        self.assertEqual(withdrawal.fee, 3.5)
        self.assertEqual(withdrawal.net_amount, 31.5)
        self.assertEqual(withdrawal.status, "pending")
        self.assertEqual(user.balance, 5.0)

    def test_outside_window_is_refused(self) -> None:
        user = make_user(self.db, balance=40.0)

        result = request_withdrawal(self.db, user.id, 35, "a@b.com", "email", ledger_time(2026, 3, 2, 20))

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "outside_window")
        self.assertIn("09:00 to 17:00", result.error_message)
        self.assertEqual(user.balance, 40.0)
        self.assertEqual(self._withdrawals(), [])

    def test_insufficient_balance_reports_current_balance(self) -> None:
        user = make_user(self.db, balance=10.0)

        result = request_withdrawal(self.db, user.id, 35, "a@b.com", "email", OPEN_HOUR)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "insufficient_balance")
        self.assertIn("10.00", result.error_message)
        self.assertEqual(user.balance, 10.0)

    def test_field_validation(self) -> None:
        user = make_user(self.db, balance=100.0)
        cases = [
            (0, "a@b.com", "email", "invalid_amount"),
            (20, "a@b.com", "email", "below_minimum"),
            (40, "", "email", "missing_field"),
            (40, "a@b.com", "iban", "invalid_pix_type"),
        ]
        for amount, key, key_type, code in cases:
            with self.subTest(code=code):
                result = request_withdrawal(self.db, user.id, amount, key, key_type, OPEN_HOUR)
                self.assertFalse(result.success)
                self.assertEqual(result.error_code, code)
        self.assertEqual(user.balance, 100.0)

    def test_non_finite_amounts_are_invalid(self) -> None:
        user = make_user(self.db, balance=100.0)

        for amount in (float("nan"), float("inf"), float("-inf")):
            with self.subTest(amount=amount):
                result = request_withdrawal(self.db, user.id, amount, "a@b.com", "email", OPEN_HOUR)
                self.assertFalse(result.success)
                self.assertEqual(result.error_code, "invalid_amount")
        self.assertEqual(user.balance, 100.0)
        self.assertEqual(self._withdrawals(), [])

    def test_gateway_failure_leaves_balance_untouched(self) -> None:
        user = make_user(self.db, balance=40.0)

        with patch(
            "monety.services.withdrawal_service.request_pix_payout",
            side_effect=PaymentGatewayError("provider offline"),
        ):
            result = request_withdrawal(self.db, user.id, 35, "a@b.com", "email", OPEN_HOUR)

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, "gateway_error")
        self.assertEqual(result.error_message, "provider offline")
        self.assertEqual(user.balance, 40.0)
        self.assertEqual(self._withdrawals(), [])

    def test_gateway_registered_withdrawal_is_processing(self) -> None:
        user = make_user(self.db, balance=50.0)

        with patch("monety.services.withdrawal_service.gateway_enabled", return_value=True), patch(
            "monety.services.withdrawal_service.request_pix_payout"
        ) as payout:
            result = request_withdrawal(self.db, user.id, 40, "+5511999999999", "phone", OPEN_HOUR)

        self.assertTrue(result.success)
        self.assertEqual(result.data.status, "processing")
        payout.assert_called_once_with(user.id, 40.0, "+5511999999999", "phone")

    def test_status_transitions(self) -> None:
        user = make_user(self.db, balance=80.0)
        withdrawal_id = request_withdrawal(self.db, user.id, 35, "a@b.com", "email", OPEN_HOUR).data.id

        self.assertEqual(update_withdrawal_status(self.db, withdrawal_id, "processing").data.status, "processing")
        self.assertEqual(update_withdrawal_status(self.db, withdrawal_id, "completed").data.status, "completed")

        backwards = update_withdrawal_status(self.db, withdrawal_id, "pending")
        self.assertFalse(backwards.success)
        self.assertEqual(backwards.error_code, "invalid_status_transition")

        missing = update_withdrawal_status(self.db, "0" * 32, "completed")
        self.assertEqual(missing.error_code, "withdrawal_not_found")

    def test_rejection_does_not_refund(self) -> None:
        user = make_user(self.db, balance=40.0)
        withdrawal_id = request_withdrawal(self.db, user.id, 35, "a@b.com", "email", OPEN_HOUR).data.id

        result = update_withdrawal_status(self.db, withdrawal_id, "rejected")

        self.assertTrue(result.success)
        self.db.refresh(user)
        self.assertEqual(user.balance, 5.0)


if __name__ == "__main__":
    unittest.main()
