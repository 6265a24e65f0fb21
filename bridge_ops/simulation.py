"""
In-memory doubles of the bridge contracts and the chains they live on.

Contract method names mirror the deployed ABIs (``getRateInfo``,
``setRateLimit``, ``addLanes`` ...) so that the orchestration tasks drive a
simulated bridge exactly like an ape contract instance. State-changing calls
go through ``SimulatedChain.execute`` (usually via ``SimulatedTransactor``),
which mines one block per transaction and records emitted events.
"""
import itertools
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple

from eth_utils import keccak, to_checksum_address, to_hex

from bridge_ops.constants import (
    BRIDGE_DELIVERED,
    TOKEN_RECEIVED,
    TOKEN_SENT,
    USDC_DECIMALS,
    ZERO_ADDRESS,
)
from bridge_ops.errors import AdmissionRejected, Unauthorized
from bridge_ops.lanes import LaneRegistry, is_configured, same_address
from bridge_ops.ledger import EventLog, Ledger
from bridge_ops.limits import Direction, RateInfo, RateLimiter
from bridge_ops.networks import BridgeNetwork

GENESIS_TIMESTAMP = 1_700_000_000
BLOCK_TIME = 2  # seconds

BASE_MESSAGE_FEE = 10**15  # wei
DST_GAS_PRICE = 10**9  # wei per unit of destination gas


def make_address(label: str) -> str:
    """Deterministic address for a human-readable label."""
    return to_checksum_address(keccak(text=label)[-20:])


class SimulatedAccount(NamedTuple):
    alias: str
    address: str


def make_account(alias: str) -> SimulatedAccount:
    return SimulatedAccount(alias=alias, address=make_address(f"account:{alias}"))


class SimulatedReceipt(NamedTuple):
    txn_hash: str
    block_number: int
    timestamp: int
    sender: str
    value: int
    return_value: Any
    events: List[EventLog]


class SimulatedChain(Ledger):
    """
    One chain. Each executed transaction is mined in its own block.
    ``sleep`` advances simulated time and, with ``auto_mine``, produces blocks.
    """

    def __init__(
        self,
        network: BridgeNetwork,
        block_time: int = BLOCK_TIME,
        genesis_timestamp: int = GENESIS_TIMESTAMP,
        auto_mine: bool = True,
    ):
        self.network = network
        self.name = network.name
        self.block_time = block_time
        self.auto_mine = auto_mine
        self._height = 0
        self._timestamp = genesis_timestamp
        self._clock = 0.0
        self._nonce = itertools.count()
        self._logs: List[Tuple[str, EventLog]] = list()
        self._pending: List[Tuple[str, str, Dict[str, Any]]] = list()
        self.contracts: Dict[str, "SimulatedContract"] = dict()
        self.transactions: List[SimulatedReceipt] = list()

    # Ledger

    def height(self) -> int:
        return self._height

    def timestamp(self) -> int:
        return self._timestamp

    def logs(self, contract: Any, event_name: str, start_block: int):
        address = getattr(contract, "address", contract)
        for emitter, log in list(self._logs):
            if emitter != address or log.event_name != event_name:
                continue
            if log.block_number >= start_block:
                yield log

    def clock(self) -> float:
        return self._clock

    def sleep(self, seconds: float) -> None:
        self._clock += seconds
        if self.auto_mine:
            blocks = max(1, int(seconds // self.block_time))
            self.mine(blocks)

    def _proxy(self, proxy_address: str) -> "SimulatedProxy":
        proxy = self.contracts.get(proxy_address)
        if not isinstance(proxy, SimulatedProxy):
            raise ValueError(f"No proxy at {proxy_address} on {self.name}")
        return proxy

    def implementation_of(self, proxy_address: str) -> str:
        return self._proxy(proxy_address).implementation

    def admin_of(self, proxy_address: str) -> str:
        return self._proxy(proxy_address).admin

    # chain control

    def mine(self, blocks: int = 1) -> None:
        self._height += blocks
        self._timestamp += blocks * self.block_time

    def advance_time(self, seconds: int) -> None:
        """Moves time forward and mines a single block at the new time."""
        self._timestamp += seconds
        self._clock += seconds
        self._height += 1

    def register(self, contract: "SimulatedContract") -> None:
        if contract.address in self.contracts:
            raise ValueError(f"Address {contract.address} already used on {self.name}")
        self.contracts[contract.address] = contract

    def emit(self, address: str, event_name: str, **args) -> None:
        self._pending.append((address, event_name, args))

    def execute(self, method: Callable, *args, sender: str, value: int = 0) -> SimulatedReceipt:
        """Runs a state-changing call in a new block; a raised error leaves no trace."""
        self._pending = list()
        self.mine()
        try:
            result = method(*args, sender=sender, value=value)
        except Exception:
            self._pending = list()
            self._height -= 1
            self._timestamp -= self.block_time
            raise

        nonce = next(self._nonce)
        txn_hash = to_hex(keccak(text=f"{self.network.chain_id}:{nonce}:{sender}"))
        events = list()
        for address, event_name, event_args in self._pending:
            log = EventLog(
                event_name=event_name,
                args=event_args,
                transaction_hash=txn_hash,
                block_number=self._height,
            )
            self._logs.append((address, log))
            events.append(log)
        self._pending = list()

        receipt = SimulatedReceipt(
            txn_hash=txn_hash,
            block_number=self._height,
            timestamp=self._timestamp,
            sender=sender,
            value=value,
            return_value=result,
            events=events,
        )
        self.transactions.append(receipt)
        return receipt

    def deploy(self, factory: Callable, *args, sender: str, **kwargs) -> "SimulatedContract":
        """Creates a contract in a new block; like an ape deployment it carries its ``receipt``."""

        def construct(sender=None, value=0):
            return factory(self, *args, **kwargs)

        receipt = self.execute(construct, sender=sender)
        contract = receipt.return_value
        contract.receipt = receipt
        return contract


class SimulatedContract:
    def __init__(self, chain: SimulatedChain, label: str):
        self.chain = chain
        self.address = make_address(f"{chain.name}:{label}")
        chain.register(self)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.address} on {self.chain.name}>"

    def _emit(self, event_name: str, **args) -> None:
        self.chain.emit(self.address, event_name, **args)

    @staticmethod
    def _require_sender(sender: Optional[str]) -> str:
        if not sender:
            raise ValueError("A sender is required for state-changing calls")
        return sender


class SimulatedFiatToken(SimulatedContract):
    """
    USDC-style token: master minter configures minters with a mint allowance.
    Without an owner it waits for its initializers, as behind a fresh proxy.
    """

    def __init__(
        self,
        chain: SimulatedChain,
        owner: Optional[str] = None,
        master_minter: Optional[str] = None,
        label="FiatToken",
    ):
        super().__init__(chain, label)
        self._owner = owner
        self._master_minter = master_minter
        self._name = ""
        self._version = 1 if owner else 0
        self._balances: Dict[str, int] = dict()
        self._allowances: Dict[Tuple[str, str], int] = dict()
        self._minters: Dict[str, int] = dict()

    def initialize(
        self,
        name: str,
        symbol: str,
        currency: str,
        decimals: int,
        master_minter: str,
        pauser: str,
        blacklister: str,
        owner: str,
        sender=None,
        value=0,
    ) -> None:
        self._require_sender(sender)
        if self._version >= 1:
            raise ValueError("FiatToken: contract is already initialized")
        self._name = name
        self._master_minter = master_minter
        self._owner = owner
        self._version = 1

    def initializeV2(self, new_name: str, sender=None, value=0) -> None:
        self._require_sender(sender)
        if self._version != 1:
            raise ValueError("FiatToken: contract is not at version 1")
        self._name = new_name
        self._version = 2

    def name(self) -> str:
        return self._name

    def decimals(self) -> int:
        return USDC_DECIMALS

    def owner(self) -> str:
        return self._owner

    def masterMinter(self) -> str:
        return self._master_minter

    def balanceOf(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def isMinter(self, account: str) -> bool:
        return account in self._minters

    def minterAllowance(self, minter: str) -> int:
        return self._minters.get(minter, 0)

    def approve(self, spender: str, amount: int, sender=None, value=0) -> bool:
        owner = self._require_sender(sender)
        self._allowances[(owner, spender)] = amount
        self._emit("Approval", owner=owner, spender=spender, value=amount)
        return True

    def transfer(self, to: str, amount: int, sender=None, value=0) -> bool:
        self._move(self._require_sender(sender), to, amount)
        return True

    def configureMinter(self, minter: str, minter_allowance: int, sender=None, value=0) -> bool:
        if self._require_sender(sender) != self._master_minter:
            raise Unauthorized(account=sender, role="masterMinter")
        self._minters[minter] = minter_allowance
        self._emit("MinterConfigured", minter=minter, minterAllowedAmount=minter_allowance)
        return True

    def removeMinter(self, minter: str, sender=None, value=0) -> bool:
        if self._require_sender(sender) != self._master_minter:
            raise Unauthorized(account=sender, role="masterMinter")
        self._minters.pop(minter, None)
        self._emit("MinterRemoved", oldMinter=minter)
        return True

    def mint(self, to: str, amount: int, sender=None, value=0) -> bool:
        minter = self._require_sender(sender)
        if minter not in self._minters:
            raise Unauthorized(account=minter, role="minter")
        if amount > self._minters[minter]:
            raise ValueError("FiatToken: mint amount exceeds minterAllowance")
        self._minters[minter] -= amount
        self._balances[to] = self.balanceOf(to) + amount
        self._emit("Mint", minter=minter, to=to, amount=amount)
        return True

    def transferOwnership(self, new_owner: str, sender=None, value=0) -> None:
        if self._require_sender(sender) != self._owner:
            raise Unauthorized(account=sender, role="owner")
        self._emit("OwnershipTransferred", previousOwner=self._owner, newOwner=new_owner)
        self._owner = new_owner

    # internal helpers used by the other doubles on the same chain

    def _move(self, src: str, dst: str, amount: int) -> None:
        if amount > self.balanceOf(src):
            raise ValueError("ERC20: transfer amount exceeds balance")
        self._balances[src] = self.balanceOf(src) - amount
        self._balances[dst] = self.balanceOf(dst) + amount
        self._emit("Transfer", **{"from": src, "to": dst, "value": amount})

    def _spend(self, owner: str, spender: str, to: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if amount > allowed:
            raise ValueError("ERC20: transfer amount exceeds allowance")
        self._move(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def _burn(self, account: str, amount: int) -> None:
        self._move(account, ZERO_ADDRESS, amount)
        self._balances.pop(ZERO_ADDRESS, None)


class SimulatedProxy(SimulatedContract):
    def __init__(self, chain: SimulatedChain, implementation: str, admin: str, label: str):
        super().__init__(chain, label)
        self.implementation = implementation
        self.admin = admin


class SimulatedProxyAdmin(SimulatedContract):
    def __init__(self, chain: SimulatedChain, owner: str, label="ProxyAdmin"):
        super().__init__(chain, label)
        self._owner = owner

    def owner(self) -> str:
        return self._owner

    def transferOwnership(self, new_owner: str, sender=None, value=0) -> None:
        if self._require_sender(sender) != self._owner:
            raise Unauthorized(account=sender, role="owner")
        if not is_configured(new_owner):
            raise ValueError("Ownable: new owner is the zero address")
        self._emit("OwnershipTransferred", previousOwner=self._owner, newOwner=new_owner)
        self._owner = new_owner

    def _administered(self, proxy: str, sender) -> SimulatedProxy:
        if self._require_sender(sender) != self._owner:
            raise Unauthorized(account=sender, role="owner")
        target = self.chain.contracts.get(proxy)
        if not isinstance(target, SimulatedProxy) or target.admin != self.address:
            raise ValueError(f"{proxy} is not a proxy administered by {self.address}")
        return target

    def upgradeAndCall(self, proxy: str, implementation: str, data: bytes, sender=None, value=0):
        target = self._administered(proxy, sender)
        target.implementation = implementation
        self.chain.emit(proxy, "Upgraded", implementation=implementation)

    def changeProxyAdmin(self, proxy: str, new_admin: str, sender=None, value=0):
        target = self._administered(proxy, sender)
        self.chain.emit(proxy, "AdminChanged", previousAdmin=target.admin, newAdmin=new_admin)
        target.admin = new_admin


class Message(NamedTuple):
    message_id: str
    src_selector: int
    dst_selector: int
    src_bridge: str
    token_sender: str
    token_receiver: str
    amount: int


class SimulatedBridge(SimulatedContract):
    """
    L2 bridge: burns on send, mints on delivery. Rate buckets and lanes are
    keyed by the counterpart chain selector.
    """

    DELIVERY_EVENT = TOKEN_RECEIVED

    def __init__(
        self,
        chain: SimulatedChain,
        token: SimulatedFiatToken,
        admin: str,
        rate_limit_admin: str,
        relayer: Optional["SimulatedRelayer"] = None,
        label: str = "LancaCanonicalBridge",
    ):
        super().__init__(chain, label)
        self.token = token
        self.chain_selector = chain.network.chain_selector
        self.rate_limits = RateLimiter(admins=[rate_limit_admin])
        self.registry = LaneRegistry(admins=[admin])
        self.relayer = relayer
        self._message_nonce = itertools.count()
        if relayer is not None:
            relayer.connect(self)

    # rate limits

    def getRateInfo(self, dst_chain_selector: int, is_outbound: bool) -> RateInfo:
        return self.rate_limits.inspect(
            dst_chain_selector, Direction.from_flag(is_outbound), now=self.chain.timestamp()
        )

    def setRateLimit(
        self,
        dst_chain_selector: int,
        max_amount: int,
        refill_speed: int,
        is_outbound: bool,
        sender=None,
        value=0,
    ) -> None:
        direction = Direction.from_flag(is_outbound)
        self.rate_limits.configure(
            dst_chain_selector,
            direction,
            max_amount=max_amount,
            refill_speed=refill_speed,
            sender=self._require_sender(sender),
            now=self.chain.timestamp(),
        )
        self._emit(
            "RateLimitSet",
            dstChainSelector=dst_chain_selector,
            maxAmount=max_amount,
            refillSpeed=refill_speed,
            isOutbound=is_outbound,
        )

    # lanes

    def getLane(self, chain_selector: int) -> str:
        return self.registry.get_lane(chain_selector)

    def addLanes(self, selectors: Sequence[int], lanes: Sequence[str], sender=None, value=0):
        self.registry.add("lane", selectors, lanes, sender=self._require_sender(sender))
        for selector, lane in zip(selectors, lanes):
            self._emit("LaneAdded", chainSelector=selector, lane=lane)

    def removeLanes(self, selectors: Sequence[int], sender=None, value=0):
        self.registry.remove("lane", selectors, sender=self._require_sender(sender))
        for selector in selectors:
            self._emit("LaneRemoved", chainSelector=selector)

    # messaging

    def getMessageFee(self, dst_chain_selector: int, fee_token: str, dst_chain_data) -> int:
        if not same_address(fee_token, ZERO_ADDRESS):
            raise ValueError(f"Unsupported fee token {fee_token}")
        _, gas_limit = self._unpack(dst_chain_data)
        return BASE_MESSAGE_FEE + gas_limit * DST_GAS_PRICE

    def sendToken(self, amount: int, fee_token: str, dst_chain_data, sender=None, value=0) -> str:
        hub_selector = self._only_lane()
        return self._send(amount, hub_selector, fee_token, dst_chain_data, sender, value)

    def deliver(self, message: Message, sender=None, value=0) -> None:
        """Called by the relayer on the destination chain."""
        self._require_sender(sender)
        lane = self.registry.get_lane(message.src_selector)
        if not is_configured(lane) or not same_address(lane, message.src_bridge):
            raise Unauthorized(account=message.src_bridge, role="lane")

        now = self.chain.timestamp()
        self.rate_limits.check(message.src_selector, Direction.INBOUND, message.amount, now)
        self._release(message)
        self.rate_limits.consume(message.src_selector, Direction.INBOUND, message.amount, now)
        self._emit_delivery(message)

    # internals

    @staticmethod
    def _unpack(dst_chain_data) -> Tuple[str, int]:
        if isinstance(dst_chain_data, dict):
            return dst_chain_data["receiver"], int(dst_chain_data["gasLimit"])
        receiver, gas_limit = dst_chain_data
        return receiver, int(gas_limit)

    def _only_lane(self) -> int:
        selectors = self.registry.selectors("lane")
        if len(selectors) != 1:
            raise ValueError(f"L2 bridge expects exactly one lane, found {len(selectors)}")
        return selectors[0]

    def _send(self, amount, dst_selector, fee_token, dst_chain_data, sender, value) -> str:
        sender = self._require_sender(sender)
        lane = self.registry.get_lane(dst_selector)
        if not is_configured(lane):
            raise ValueError(f"No lane registered for chain {dst_selector}")
        fee = self.getMessageFee(dst_selector, fee_token, dst_chain_data)
        if value < fee:
            raise ValueError(f"Insufficient message fee: sent {value}, required {fee}")
        receiver, _ = self._unpack(dst_chain_data)

        now = self.chain.timestamp()
        self.rate_limits.check(dst_selector, Direction.OUTBOUND, amount, now)
        self._collect(amount, dst_selector, sender)
        self.rate_limits.consume(dst_selector, Direction.OUTBOUND, amount, now)

        nonce = next(self._message_nonce)
        message_id = to_hex(
            keccak(text=f"{self.chain_selector}:{dst_selector}:{self.address}:{nonce}")
        )
        self._emit(
            TOKEN_SENT,
            messageId=message_id,
            dstChainSelector=dst_selector,
            tokenSender=sender,
            tokenReceiver=receiver,
            amount=amount,
        )
        if self.relayer is not None:
            self.relayer.enqueue(
                Message(
                    message_id=message_id,
                    src_selector=self.chain_selector,
                    dst_selector=dst_selector,
                    src_bridge=self.address,
                    token_sender=sender,
                    token_receiver=receiver,
                    amount=amount,
                )
            )
        return message_id

    def _collect(self, amount: int, dst_selector: int, sender: str) -> None:
        self.token._spend(sender, self.address, self.address, amount)
        self.token._burn(self.address, amount)

    def _release(self, message: Message) -> None:
        self.token.mint(message.token_receiver, message.amount, sender=self.address)

    def _emit_delivery(self, message: Message) -> None:
        self._emit(
            TOKEN_RECEIVED,
            messageId=message.message_id,
            sender=message.src_bridge,
            tokenSender=message.token_sender,
            tokenReceiver=message.token_receiver,
            amount=message.amount,
        )


class SimulatedBridgeL1(SimulatedBridge):
    """
    L1 hub bridge: locks tokens in the destination's pool on send and
    releases them from the source's pool on delivery.
    """

    DELIVERY_EVENT = BRIDGE_DELIVERED

    def __init__(self, *args, label: str = "LancaCanonicalBridgeL1", **kwargs):
        super().__init__(*args, label=label, **kwargs)

    def getPool(self, chain_selector: int) -> str:
        return self.registry.get_pool(chain_selector)

    def addPools(self, selectors: Sequence[int], pools: Sequence[str], sender=None, value=0):
        self.registry.add("pool", selectors, pools, sender=self._require_sender(sender))
        for selector, pool in zip(selectors, pools):
            self._emit("PoolAdded", chainSelector=selector, pool=pool)

    def removePools(self, selectors: Sequence[int], sender=None, value=0):
        self.registry.remove("pool", selectors, sender=self._require_sender(sender))
        for selector in selectors:
            self._emit("PoolRemoved", chainSelector=selector)

    def sendToken(
        self,
        amount: int,
        dst_chain_selector: int,
        fee_token: str,
        dst_chain_data,
        sender=None,
        value=0,
    ) -> str:
        return self._send(amount, dst_chain_selector, fee_token, dst_chain_data, sender, value)

    def _pool(self, selector: int) -> str:
        pool = self.registry.get_pool(selector)
        if not is_configured(pool):
            raise ValueError(f"No pool registered for chain {selector}")
        return pool

    def _collect(self, amount: int, dst_selector: int, sender: str) -> None:
        pool = self._pool(dst_selector)
        self.token._spend(sender, pool, pool, amount)

    def _release(self, message: Message) -> None:
        pool = self._pool(message.src_selector)
        self.token._move(pool, message.token_receiver, message.amount)

    def _emit_delivery(self, message: Message) -> None:
        self._emit(
            BRIDGE_DELIVERED,
            messageId=message.message_id,
            srcBridge=message.src_bridge,
            tokenSender=message.token_sender,
            tokenReceiver=message.token_receiver,
            tokenAmount=message.amount,
        )


class SimulatedRelayer:
    """Carries sent messages to their destination bridge when ``relay`` is called."""

    def __init__(self, account: Optional[SimulatedAccount] = None):
        self.account = account or make_account("relayer")
        self.bridges: Dict[int, SimulatedBridge] = dict()
        self.pending: List[Message] = list()
        self.delivered: List[str] = list()

    def connect(self, bridge: SimulatedBridge) -> None:
        self.bridges[bridge.chain_selector] = bridge

    def enqueue(self, message: Message) -> None:
        self.pending.append(message)

    def relay(self) -> List[str]:
        """Attempts every pending delivery; rejected ones stay queued."""
        delivered, still_pending = list(), list()
        for message in self.pending:
            bridge = self.bridges.get(message.dst_selector)
            if bridge is None:
                still_pending.append(message)
                continue
            try:
                bridge.chain.execute(bridge.deliver, message, sender=self.account.address)
            except (AdmissionRejected, Unauthorized, ValueError) as e:
                print(f"({bridge.chain.name}) Delivery of {message.message_id} deferred: {e}")
                still_pending.append(message)
            else:
                delivered.append(message.message_id)
        self.pending = still_pending
        self.delivered.extend(delivered)
        return delivered


class SimulatedTransactor:
    """Same calling convention as the ape-backed Transactor, against simulated chains."""

    def __init__(self, account: SimulatedAccount):
        self._account = account

    def get_account(self) -> SimulatedAccount:
        return self._account

    def transact(self, method: Callable, *args, value: int = 0) -> SimulatedReceipt:
        contract = method.__self__
        pretty_args = ", ".join(str(a) for a in args)
        print(
            f"\nTransacting {type(contract).__name__}[{contract.address[:10]}]."
            f"{method.__name__}({pretty_args})"
        )
        return contract.chain.execute(method, *args, sender=self._account.address, value=value)
