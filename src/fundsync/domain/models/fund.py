"""Fund directory entry."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FundInfo:
    """One fund from the provider's code directory."""

    code: str
    name: str
    fund_type: str = ""
    pinyin: str = ""
