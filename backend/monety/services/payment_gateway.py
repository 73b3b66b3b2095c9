from dataclasses import dataclass
import json
import secrets
from urllib import error as urllib_error
from urllib import request as urllib_request

from loguru import logger

from monety.core.config import get_settings

PIX_CODE_PREFIX = "00020126580014BR.GOV.BCB.PIX"


class PaymentGatewayError(Exception):
    pass


@dataclass
class PixCharge:
    pix_code: str
    gateway_id: str | None = None


def gateway_enabled() -> bool:
    return bool(str(get_settings().payment_gateway_url or "").strip())


def _gateway_url(path: str) -> str:
    base_url = str(get_settings().payment_gateway_url or "").strip().rstrip("/")
    if not base_url:
        raise PaymentGatewayError("Payment gateway URL is not configured")
    return f"{base_url}/{path.lstrip('/')}"


def _http_timeout() -> float:
    return max(1.0, float(get_settings().payment_gateway_timeout_seconds))


def _error_message_from_body(body: str, fallback: str) -> str:
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return fallback
    if isinstance(parsed, dict):
        message = parsed.get("message") or parsed.get("error")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return fallback


def _http_post_json(url: str, payload: dict, failure_message: str) -> dict:
    data = json.dumps(payload, ensure_ascii=True).encode("utf-8")
    req = urllib_request.Request(
        url=url,
        data=data,
        headers={"Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib_request.urlopen(req, timeout=_http_timeout()) as response:
            text = response.read().decode("utf-8")
    except urllib_error.HTTPError as exc:
        body = exc.read().decode("utf-8", errors="ignore")
        raise PaymentGatewayError(_error_message_from_body(body, failure_message)) from exc
    except urllib_error.URLError as exc:
        raise PaymentGatewayError(f"{failure_message}: {exc.reason}") from exc

    if not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PaymentGatewayError("Invalid JSON response from payment gateway") from exc
    if not isinstance(parsed, dict):
        raise PaymentGatewayError("Unexpected payment gateway response shape")
    return parsed


def generate_local_pix_code() -> str:
    return f"{PIX_CODE_PREFIX}{secrets.token_hex(16).upper()}"


def request_pix_charge(user_id: str, email: str, amount: float) -> PixCharge:
    if not gateway_enabled():
        return PixCharge(pix_code=generate_local_pix_code())

    response = _http_post_json(
        _gateway_url("/deposito"),
        {"userId": user_id, "email": email, "amount": amount},
        "Payment gateway communication failed",
    )
    pix_code = response.get("pix_copia_e_cola")
    if not isinstance(pix_code, str) or not pix_code.strip():
        raise PaymentGatewayError("PIX code not returned by payment provider")
    gateway_id = response.get("depositId")
    logger.info("PIX charge issued by gateway", extra={"user_id": user_id, "amount": amount})
    return PixCharge(pix_code=pix_code.strip(), gateway_id=str(gateway_id) if gateway_id else None)


def request_pix_payout(user_id: str, amount: float, pix_key: str, pix_type: str) -> None:
    if not gateway_enabled():
        return
    _http_post_json(
        _gateway_url("/saque"),
        {"userId": user_id, "amount": amount, "pixKey": pix_key, "pixType": pix_type},
        "Payment gateway rejected the withdrawal",
    )
    logger.info("PIX payout registered with gateway", extra={"user_id": user_id, "amount": amount})
