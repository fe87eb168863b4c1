import csv
from decimal import Decimal, localcontext
from typing import Iterable, TextIO, Tuple

from models import AMOUNT_QUANTUM, LEDGER_CONTEXT, ClientAccount

HEADER = ["client", "available", "held", "total", "locked"]


def format_amount(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    with localcontext(LEDGER_CONTEXT):
        return f"{value.quantize(AMOUNT_QUANTUM):f}"


def write_accounts_csv(accounts: Iterable[Tuple[int, ClientAccount]], stream: TextIO) -> None:
    """Write one row per account, in the order given."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(HEADER)
    for client_id, account in accounts:
        writer.writerow([
            client_id,
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            str(account.locked).lower(),
        ])
