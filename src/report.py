import sys
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Dict, TextIO

from models import BALANCE_CONTEXT, ClientAccount

HEADER = "client,available,held,total,locked"
FOUR_PLACES = Decimal("0.0001")


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places, rounding half up."""
    with localcontext(BALANCE_CONTEXT):
        return f"{value.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP):f}"


def format_account_row(account: ClientAccount) -> str:
    return (
        f"{account.client_id},"
        f"{format_decimal(account.available)},"
        f"{format_decimal(account.held)},"
        f"{format_decimal(account.total)},"
        f"{str(account.locked).lower()}"
    )


def write_report(accounts: Dict[int, ClientAccount], stream: TextIO = sys.stdout) -> None:
    """Write the balance snapshot, one row per client ordered by client id."""
    stream.write(HEADER + "\n")
    for client_id in sorted(accounts.keys()):
        stream.write(format_account_row(accounts[client_id]) + "\n")
    stream.flush()
