"""
Durable address book of deployed contracts.

One JSON file per network type, keyed by chain id, then by registry name.
A registry name is a contract role optionally qualified by the counterpart
network it serves, e.g. ``LancaCanonicalBridgePoolProxy@arbitrum``.
"""
import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from bridge_ops.constants import ARTIFACTS_DIR, SUPPORTED_NETWORK_TYPES
from bridge_ops.errors import ConfigurationMissing
from bridge_ops.lanes import is_configured
from bridge_ops.networks import BridgeNetwork

ChainId = int
RegistryName = str

COUNTERPART_DELIMITER = "@"

STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deployed contract in the address book."""

    chain_id: ChainId
    name: str
    address: ChecksumAddress
    tx_hash: str
    block_number: int
    deployer: str
    counterpart: Optional[str] = None

    @property
    def key(self) -> RegistryName:
        return registry_key(self.name, self.counterpart)


def registry_key(name: str, counterpart: Optional[str] = None) -> RegistryName:
    if COUNTERPART_DELIMITER in name:
        raise ValueError(f"Contract name '{name}' cannot contain '{COUNTERPART_DELIMITER}'")
    if counterpart:
        return f"{name}{COUNTERPART_DELIMITER}{counterpart}"
    return name


def split_registry_key(key: RegistryName):
    name, _, counterpart = key.partition(COUNTERPART_DELIMITER)
    return name, counterpart or None


def registry_filepath(network_type: str, artifacts_dir: Path = ARTIFACTS_DIR) -> Path:
    if network_type not in SUPPORTED_NETWORK_TYPES:
        raise ValueError(f"Unsupported network type '{network_type}'")
    return artifacts_dir / f"{network_type}.json"


def read_registry(filepath: Path) -> List[RegistryEntry]:
    if not filepath.exists():
        return list()
    with open(filepath, "r") as file:
        data = json.load(file)
    registry_entries = list()
    for chain_id, entries in data.items():
        for key, artifacts in entries.items():
            name, counterpart = split_registry_key(key)
            registry_entry = RegistryEntry(
                chain_id=int(chain_id),
                name=name,
                counterpart=counterpart,
                address=artifacts["address"],
                tx_hash=artifacts["tx_hash"],
                block_number=artifacts["block_number"],
                deployer=artifacts["deployer"],
            )
            registry_entries.append(registry_entry)
    return registry_entries


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """
    Writes entries to the address book, replacing any existing entry
    with the same chain id and registry name.
    """
    if not entries:
        print("No entries provided.")
        return filepath

    merged: Dict[tuple, RegistryEntry] = dict()
    for entry in read_registry(filepath):
        merged[(entry.chain_id, entry.key)] = entry
    for entry in entries:
        previous = merged.get((entry.chain_id, entry.key))
        if previous and previous.address != entry.address and not silent:
            print(
                f"(i) Replacing {entry.key} on chain {entry.chain_id}: "
                f"{previous.address} -> {entry.address}"
            )
        merged[(entry.chain_id, entry.key)] = entry

    # common order keeps diffs readable
    ordered = sorted(merged.values(), key=lambda e: (str(e.chain_id), e.key))
    data = defaultdict(dict)
    for entry in ordered:
        data[str(entry.chain_id)][entry.key] = {
            "address": entry.address,
            "tx_hash": entry.tx_hash,
            "block_number": int(entry.block_number),
            "deployer": entry.deployer,
        }

    filepath.parent.mkdir(parents=True, exist_ok=True)
    if not silent:
        print(f"(i) Writing {len(entries)} entries to registry at {filepath}.")
    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)

    return filepath


class AddressBook:
    """Read-before-use, write-after-deploy access to a registry file."""

    def __init__(self, filepath: Path):
        self.filepath = filepath

    @classmethod
    def for_network_type(cls, network_type: str, artifacts_dir: Path = ARTIFACTS_DIR):
        return cls(registry_filepath(network_type, artifacts_dir))

    def _index(self) -> Dict[tuple, RegistryEntry]:
        return {(e.chain_id, e.key): e for e in read_registry(self.filepath)}

    def find(
        self, name: str, network: BridgeNetwork, counterpart: Optional[str] = None
    ) -> Optional[ChecksumAddress]:
        """Returns the recorded address, or None when not yet deployed."""
        entry = self._index().get((network.chain_id, registry_key(name, counterpart)))
        if entry is None or not is_configured(entry.address):
            return None
        return to_checksum_address(entry.address)

    def get(
        self, name: str, network: BridgeNetwork, counterpart: Optional[str] = None
    ) -> ChecksumAddress:
        address = self.find(name, network, counterpart)
        if address is None:
            key = registry_key(name, counterpart)
            raise ConfigurationMissing(
                key=f"{key} on {network.name}",
                hint=f"Deploy it first or add it to {self.filepath}.",
            )
        return address

    def record(
        self,
        name: str,
        network: BridgeNetwork,
        address: str,
        tx_hash: str = "",
        block_number: int = 0,
        deployer: str = "",
        counterpart: Optional[str] = None,
    ) -> RegistryEntry:
        entry = RegistryEntry(
            chain_id=network.chain_id,
            name=name,
            counterpart=counterpart,
            address=to_checksum_address(address),
            tx_hash=tx_hash,
            block_number=block_number,
            deployer=deployer,
        )
        write_registry(entries=[entry], filepath=self.filepath)
        return entry

    def networks_with(self, name: str) -> List[ChainId]:
        """Chain ids that have an entry for ``name`` (any counterpart)."""
        return sorted({e.chain_id for e in read_registry(self.filepath) if e.name == name})
