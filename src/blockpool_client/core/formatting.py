"""Display helpers for addresses and token amounts."""

from decimal import Decimal, InvalidOperation

USEI_PER_SEI = Decimal(1_000_000)


def format_address(address: str | None, keep: int = 6) -> str:
    """
    Shorten an address for display.

    Parameters
    ----------
    address : str | None
        Wallet or contract address
    keep : int
        Characters kept at each end

    Returns
    -------
    str
        e.g. 'sei1qy...52euf0', or 'Unknown' for empty input

    """
    if not address:
        return "Unknown"
    if len(address) <= keep * 2:
        return address
    return f"{address[:keep]}...{address[-keep:]}"


def format_amount(amount: str | float | Decimal) -> str:
    """
    Format an amount with K/M suffixes and precision bands.

    Parameters
    ----------
    amount : str | float | Decimal
        Amount to format

    Returns
    -------
    str
        Formatted amount, '0' for unparseable input

    """
    try:
        num = Decimal(str(amount))
    except InvalidOperation:
        return "0"
    if not num.is_finite():
        return "0"

    if num >= 1_000_000:
        return f"{num / 1_000_000:.2f}M"
    if num >= 1_000:
        return f"{num / 1_000:.2f}K"
    if num < Decimal("0.01"):
        return f"{num:.6f}"
    if num < 1:
        return f"{num:.4f}"
    return f"{num:.2f}"


def format_sei(amount: str | float | Decimal) -> str:
    """Format an amount already expressed in SEI."""
    return f"{format_amount(amount)} SEI"


def format_usei(amount: str | int, denom: str = "usei") -> str:
    """
    Convert a micro-denominated balance to a display string.

    Parameters
    ----------
    amount : str | int
        Raw on-chain amount
    denom : str
        Denomination; only 'usei' is converted

    Returns
    -------
    str
        e.g. '1.500000 SEI' for 1500000 usei, otherwise '<amount> <denom>'

    """
    if denom != "usei":
        return f"{amount} {denom}"
    try:
        sei = Decimal(str(amount)) / USEI_PER_SEI
    except InvalidOperation:
        return f"{amount} {denom}"
    return f"{sei:.6f} SEI"
