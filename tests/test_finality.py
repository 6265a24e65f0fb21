import pytest

from bridge_ops.errors import FinalityTimeout, NotYetObserved, Unauthorized
from bridge_ops.finality import wait_for_event, wait_for_finality
from bridge_ops.simulation import SimulatedChain, SimulatedFiatToken


@pytest.fixture
def chain(spoke_network):
    return SimulatedChain(spoke_network)


@pytest.fixture
def token(chain, deployer):
    return SimulatedFiatToken(chain, deployer.address, deployer.address)


def test_waits_until_deep_enough(chain, token, deployer):
    receipt = chain.execute(token.configureMinter, deployer.address, 1, sender=deployer.address)
    assert chain.height() == receipt.block_number

    depth = wait_for_finality(chain, receipt, confirmations=3, poll_interval=2)
    assert depth == 3
    assert chain.height() == receipt.block_number + 2


def test_already_final_returns_immediately(chain, token, deployer):
    receipt = chain.execute(token.configureMinter, deployer.address, 1, sender=deployer.address)
    chain.mine(10)
    before = chain.clock()
    assert wait_for_finality(chain, receipt, confirmations=2) == 11
    assert chain.clock() == before


def test_finality_timeout(spoke_network, deployer):
    chain = SimulatedChain(spoke_network, auto_mine=False)
    token = SimulatedFiatToken(chain, deployer.address, deployer.address)
    receipt = chain.execute(token.configureMinter, deployer.address, 1, sender=deployer.address)

    with pytest.raises(FinalityTimeout) as e:
        wait_for_finality(chain, receipt, confirmations=2, timeout=7, poll_interval=2)
    assert e.value.txn_hash == receipt.txn_hash
    assert e.value.confirmations == 2
    assert chain.clock() == 7


def test_wait_for_event(chain, token, deployer, user):
    chain.execute(token.configureMinter, deployer.address, 100, sender=deployer.address)
    chain.execute(token.mint, user.address, 5, sender=deployer.address)

    log = wait_for_event(chain, token, "Mint", match=lambda e: e.args["to"] == user.address)
    assert log.args["amount"] == 5
    assert log.block_number == chain.height()


def test_event_not_observed(chain, token, user):
    with pytest.raises(NotYetObserved) as e:
        wait_for_event(
            chain, token, "Mint", match=lambda e: True, timeout=10, poll_interval=5
        )
    assert e.value.event_name == "Mint"
    assert chain.clock() == 10


def test_events_outside_the_lookback_window_are_ignored(chain, token, deployer, user):
    chain.execute(token.configureMinter, deployer.address, 100, sender=deployer.address)
    chain.execute(token.mint, user.address, 5, sender=deployer.address)
    chain.mine(50)
    with pytest.raises(NotYetObserved):
        wait_for_event(chain, token, "Mint", match=lambda e: True, timeout=1, lookback=10)


def test_failed_transactions_leave_no_trace(chain, token, user):
    height = chain.height()
    with pytest.raises(Unauthorized):
        chain.execute(token.mint, user.address, 5, sender=user.address)
    assert chain.height() == height
    assert chain.transactions == []
    assert list(chain.logs(token, "Mint", 0)) == []
