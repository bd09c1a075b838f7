"""
Data Ingestion - Activity Normalizer.

============================================================
RESPONSIBILITY
============================================================
Maps raw provider records (Covalent shape, or Moralis records
already mapped onto it) into canonical Activity objects.

- Lower-cases addresses
- Derives a decimal-normalized amount and token symbol
- Estimates USD value from provider quotes
- Classifies the record

============================================================
AMOUNT DERIVATION
============================================================
1. An ERC-20 transfer whose from/to pair equals the record's own
   pair: value / 10**token_decimals (default 18), token_symbol.
2. Otherwise a native value: value / 10**18, token "NATIVE".

============================================================
USD ESTIMATE
============================================================
1. value_quote reported by the provider
2. amount * quote rate (transfer quote_rate for tokens,
   record quote_rate / gas_quote_rate for native value)
3. absent

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from activity_ingestion.classifier import classify_transaction
from activity_ingestion.models import Activity
from activity_ingestion.numbers import as_number, parse_decimals, scale_units
from activity_ingestion.timestamps import to_iso


logger = logging.getLogger(__name__)


NATIVE_TOKEN = "NATIVE"
NATIVE_DECIMALS = 18
MISSING_TX_HASH = "unknown"


def _lower(value: Any) -> str:
    return str(value or "").lower()


def _matching_token_transfer(record: dict[str, Any]) -> Optional[dict[str, Any]]:
    transfers = record.get("erc20_transfers")
    if not isinstance(transfers, list):
        return None
    sender = _lower(record.get("from_address"))
    receiver = _lower(record.get("to_address"))
    for transfer in transfers:
        if not isinstance(transfer, dict):
            continue
        if _lower(transfer.get("from_address")) == sender and _lower(transfer.get("to_address")) == receiver:
            return transfer
    return None


def derive_amount(record: dict[str, Any]) -> tuple[Optional[str], Optional[Decimal], Optional[Decimal]]:
    """
    Work out (token, amount, quote_rate) for a raw record.

    Returns:
        Token symbol, normalized amount and the per-unit quote rate that
        applies to that amount (each may be None)
    """
    transfer = _matching_token_transfer(record)
    if transfer is not None:
        decimals = parse_decimals(transfer.get("token_decimals"))
        amount = scale_units(transfer.get("value"), decimals)
        if amount is None:
            amount = as_number(transfer.get("value_decimal"))
        token = transfer.get("token_symbol") or "TOKEN"
        return token, amount, as_number(transfer.get("quote_rate"))

    if record.get("value") is not None:
        amount = scale_units(record.get("value"), NATIVE_DECIMALS)
        if amount is not None:
            rate = as_number(record.get("quote_rate"))
            if rate is None:
                rate = as_number(record.get("gas_quote_rate"))
            return NATIVE_TOKEN, amount, rate

    return None, None, None


def estimate_usd(
    record: dict[str, Any],
    amount: Optional[Decimal],
    quote_rate: Optional[Decimal],
) -> Optional[Decimal]:
    """Provider quote first, then amount times rate, else None."""
    quote = as_number(record.get("value_quote"))
    if quote is not None:
        return quote
    if amount is not None and quote_rate is not None:
        return amount * quote_rate
    return None


def activity_id(chain_id: int, tx_hash: Optional[str]) -> str:
    """Deterministic id for an API-sourced activity."""
    return f"{chain_id}:{tx_hash or MISSING_TX_HASH}"


def normalize(record: dict[str, Any], chain_id: int) -> Activity:
    """
    Normalize one raw record into an Activity.

    Pure function of its inputs: the same record and chain id always
    produce an equal Activity.
    """
    tx_hash = record.get("tx_hash") or MISSING_TX_HASH
    token, amount, quote_rate = derive_amount(record)

    return Activity(
        id=activity_id(chain_id, tx_hash),
        chain_id=chain_id,
        timestamp=to_iso(record.get("block_signed_at")),
        type=classify_transaction(record),
        from_address=_lower(record.get("from_address")),
        to_address=_lower(record.get("to_address")),
        token=token,
        amount=amount,
        amount_usd=estimate_usd(record, amount, quote_rate),
        tx_hash=tx_hash,
    )


def normalize_records(data: Any, chain_id: int) -> list[Activity]:
    """
    Normalize a provider payload: a list of records or {"items": [...]}.

    Non-dict entries are skipped.
    """
    if isinstance(data, dict):
        items = data.get("items") or []
    elif isinstance(data, list):
        items = data
    else:
        items = []

    activities = [normalize(item, chain_id) for item in items if isinstance(item, dict)]
    skipped = len(items) - len(activities)
    if skipped:
        logger.debug(f"Skipped {skipped} non-record entries for chain {chain_id}")
    return activities
