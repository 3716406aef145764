from collections.abc import Iterable
from typing import Protocol, runtime_checkable

RawRates = dict[str, float | str]


@runtime_checkable
class RateSource(Protocol):
    """
    Anything that can quote rates for a set of currencies against one base.

    Keys of the returned mapping encode the pair as ``"FROM/TO"``; either
    orientation is accepted (``"BASE/BTC"`` or ``"BTC/BASE"``). Values may be
    numbers or numeric strings.
    """

    async def fetch_rates(self, currencies: Iterable[str], base: str) -> RawRates:
        ...


def split_pair(key: str) -> tuple[str, str] | None:
    parts = key.split('/')
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        return None
    return parts[0].strip().upper(), parts[1].strip().upper()
