import click
import pytest
from eth_utils import to_checksum_address

from bridge_ops.networks import get_network
from bridge_ops.types import ChecksumAddress, MinInt, NetworkName, TokenAmount


def test_token_amount():
    assert TokenAmount().convert("10.5", None, None) == "10.5"
    with pytest.raises(click.BadParameter):
        TokenAmount().convert("ten", None, None)


def test_network_name():
    network = get_network("baseSepolia")
    assert NetworkName().convert("baseSepolia", None, None) == network
    assert NetworkName().convert(network, None, None) is network
    with pytest.raises(click.BadParameter, match="not one of"):
        NetworkName().convert("goerli", None, None)


def test_min_int():
    assert MinInt(21_000).convert("300000", None, None) == 300_000
    with pytest.raises(click.BadParameter):
        MinInt(21_000).convert("20999", None, None)
    with pytest.raises(click.BadParameter):
        MinInt(21_000).convert("lots", None, None)


def test_checksum_address():
    address = "0x" + "ab" * 20
    assert ChecksumAddress().convert(address, None, None) == to_checksum_address(address)
    with pytest.raises(click.BadParameter):
        ChecksumAddress().convert("0x1234", None, None)
