"""Calldata encoding and return-data decoding for the Aave V3 read calls."""
from __future__ import annotations

from dataclasses import dataclass

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

GET_USER_ACCOUNT_DATA = function_signature_to_4byte_selector("getUserAccountData(address)")
GET_RESERVES_LIST = function_signature_to_4byte_selector("getReservesList()")
GET_USER_RESERVES_DATA = function_signature_to_4byte_selector(
    "getUserReservesData(address,address)"
)
ERC20_SYMBOL = function_signature_to_4byte_selector("symbol()")
ERC20_DECIMALS = function_signature_to_4byte_selector("decimals()")

# UiPoolDataProviderV3.UserReserveData, per provider deployment.
# legacy: underlyingAsset, scaledATokenBalance, usageAsCollateralEnabledOnUser,
#   stableBorrowRate, scaledVariableDebt, principalStableDebt,
#   stableBorrowLastUpdateTimestamp
# v3.2: underlyingAsset, scaledATokenBalance, usageAsCollateralEnabledOnUser,
#   scaledVariableDebt
LAYOUT_LEGACY = "legacy"
LAYOUT_V32 = "v3.2"
USER_RESERVE_TYPES = {
    LAYOUT_LEGACY: "(address,uint256,bool,uint256,uint256,uint256,uint256)[]",
    LAYOUT_V32: "(address,uint256,bool,uint256)[]",
}


@dataclass(frozen=True)
class AccountData:
    """Pool.getUserAccountData; base amounts in the market's base currency units."""

    total_collateral_base: int
    total_debt_base: int
    available_borrows_base: int
    current_liquidation_threshold: int
    ltv: int
    health_factor: int


@dataclass(frozen=True)
class UserReserve:
    underlying_asset: str
    scaled_a_token_balance: int
    usage_as_collateral: bool
    scaled_variable_debt: int


def encode_user_account_data(user: str) -> bytes:
    return GET_USER_ACCOUNT_DATA + encode(["address"], [to_checksum_address(user)])


def decode_user_account_data(data: bytes) -> AccountData:
    values = decode(["uint256"] * 6, data)
    return AccountData(*values)


def encode_reserves_list() -> bytes:
    return GET_RESERVES_LIST


def decode_reserves_list(data: bytes) -> list[str]:
    (assets,) = decode(["address[]"], data)
    return list(assets)


def encode_user_reserves_data(addresses_provider: str, user: str) -> bytes:
    return GET_USER_RESERVES_DATA + encode(
        ["address", "address"],
        [to_checksum_address(addresses_provider), to_checksum_address(user)],
    )


def decode_user_reserves_data(
    data: bytes, layout: str = LAYOUT_LEGACY
) -> list[UserReserve]:
    """Decode ``getUserReservesData`` using the deployment's struct layout."""
    try:
        type_str = USER_RESERVE_TYPES[layout]
    except KeyError:
        raise ValueError(f"Unknown UserReserveData layout '{layout}'") from None
    reserves, _ = decode([type_str, "uint8"], data)
    if layout == LAYOUT_LEGACY:
        return [
            UserReserve(asset, a_token, collateral, variable_debt)
            for asset, a_token, collateral, _, variable_debt, _, _ in reserves
        ]
    return [UserReserve(*reserve) for reserve in reserves]


def decode_symbol(data: bytes) -> str:
    """Decode ``symbol()``; some older tokens return ``bytes32`` instead of ``string``."""
    try:
        (symbol,) = decode(["string"], data)
        return symbol
    except (DecodingError, OverflowError, UnicodeDecodeError):
        (raw,) = decode(["bytes32"], data)
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def decode_decimals(data: bytes) -> int:
    (decimals,) = decode(["uint8"], data)
    return int(decimals)
