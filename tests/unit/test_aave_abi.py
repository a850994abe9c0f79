"""Unit tests for Aave V3 calldata encoding and return-data decoding."""
from __future__ import annotations

import pytest
from eth_abi import encode

from ltv_watch.protocols.aave import abi, parser

ASSET = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"
USER = "0x1111111111111111111111111111111111111111"


class TestSelectors:
    def test_known_selectors(self) -> None:
        assert abi.GET_USER_ACCOUNT_DATA.hex() == "bf92857c"
        assert abi.GET_RESERVES_LIST.hex() == "d1946dbc"
        assert abi.ERC20_SYMBOL.hex() == "95d89b41"
        assert abi.ERC20_DECIMALS.hex() == "313ce567"


class TestEncode:
    def test_user_account_data_calldata(self) -> None:
        data = abi.encode_user_account_data(USER)
        assert data[:4] == abi.GET_USER_ACCOUNT_DATA
        assert len(data) == 4 + 32
        assert data[-20:].hex() == "11" * 20

    def test_user_reserves_calldata(self) -> None:
        data = abi.encode_user_reserves_data(ASSET, USER)
        assert data[:4] == abi.GET_USER_RESERVES_DATA
        assert len(data) == 4 + 64


class TestDecode:
    def test_account_data(self) -> None:
        raw = encode(["uint256"] * 6, [2_000_00000000, 1_000_00000000, 0, 8250, 8000, 165 * 10**16])
        account = abi.decode_user_account_data(raw)
        assert account.total_collateral_base == 2_000_00000000
        assert account.total_debt_base == 1_000_00000000
        assert account.current_liquidation_threshold == 8250
        assert account.health_factor == 165 * 10**16

    def test_reserves_list(self) -> None:
        raw = encode(["address[]"], [[ASSET]])
        assert [a.lower() for a in abi.decode_reserves_list(raw)] == [ASSET.lower()]

    def test_user_reserves_legacy_provider_layout(self) -> None:
        # getUserReservesData as returned by the configured mainnet providers
        raw = encode(
            ["(address,uint256,bool,uint256,uint256,uint256,uint256)[]", "uint8"],
            [[(ASSET, 5000, True, 0, 1000, 0, 0), (USER, 0, False, 0, 7, 0, 0)], 0],
        )
        reserves = abi.decode_user_reserves_data(raw)
        assert len(reserves) == 2
        assert reserves[0].scaled_a_token_balance == 5000
        assert reserves[0].usage_as_collateral is True
        assert reserves[0].scaled_variable_debt == 1000
        assert reserves[1].underlying_asset.lower() == USER.lower()
        assert reserves[1].scaled_variable_debt == 7

    def test_user_reserves_v32_layout(self) -> None:
        raw = encode(
            ["(address,uint256,bool,uint256)[]", "uint8"],
            [[(ASSET, 5, True, 0), (USER, 0, False, 7)], 0],
        )
        reserves = abi.decode_user_reserves_data(raw, abi.LAYOUT_V32)
        assert len(reserves) == 2
        assert reserves[0].usage_as_collateral is True
        assert reserves[1].scaled_variable_debt == 7

    def test_unknown_layout(self) -> None:
        with pytest.raises(ValueError, match="layout"):
            abi.decode_user_reserves_data(b"", "v9")

    def test_legacy_payload_yields_positions(self) -> None:
        raw = encode(
            ["(address,uint256,bool,uint256,uint256,uint256,uint256)[]", "uint8"],
            [[(ASSET, 5000, True, 0, 1000, 0, 0)], 0],
        )
        account = abi.AccountData(
            total_collateral_base=2_000_00000000,
            total_debt_base=1_000_00000000,
            available_borrows_base=0,
            current_liquidation_threshold=8250,
            ltv=8000,
            health_factor=165 * 10**16,
        )
        positions = parser.build_positions(
            "base", "Aave V3 Base", account, abi.decode_user_reserves_data(raw), []
        )
        assert len(positions) == 1
        assert positions[0].health_factor == pytest.approx(1.65)

    def test_string_symbol(self) -> None:
        assert abi.decode_symbol(encode(["string"], ["USDC"])) == "USDC"

    def test_bytes32_symbol(self) -> None:
        raw = encode(["bytes32"], [b"MKR".ljust(32, b"\x00")])
        assert abi.decode_symbol(raw) == "MKR"

    def test_decimals(self) -> None:
        assert abi.decode_decimals(encode(["uint8"], [6])) == 6
