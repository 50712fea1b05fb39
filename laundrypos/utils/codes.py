# laundrypos/utils/codes.py
import secrets
from datetime import datetime


def generate_order_code(now: datetime) -> str:
    # printed on the receipt and encoded in its barcode
    return f"LND-{int(now.timestamp() * 1000)}-{secrets.token_hex(2).upper()}"
