"""
Deployment plans: YAML files listing the contracts to deploy on one network,
their constructor parameters and whether they sit behind a proxy.

Constructor values may be literals or variables:

    $deployer, $proxyDeployer, $rateLimitAdmin   signing role addresses
    $CONSTANT                                    plan constants (upper case, declared
                                                 under ``constants``)
    $chainSelector, $dstChainSelector            selectors of the network / counterpart
    $RegistryName[@network]                      recorded address in the address book

Variables are checked when the plan is loaded and resolved only when a
contract is about to be deployed, so that earlier deployments in the same
plan are visible to later ones.
"""
import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from bridge_ops.constants import PLANS_DIR, PROXIES, SIGNING_ROLES
from bridge_ops.errors import ConfigurationMissing
from bridge_ops.networks import BridgeNetwork, get_network
from bridge_ops.registry import COUNTERPART_DELIMITER, AddressBook

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_PROXY_PARAMETER_KEY = "proxy"
CONTRACT_TYPE_KEY = "contract_type"
CONTRACT_INITIALIZE_KEY = "initialize"


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        network: BridgeNetwork,
        book: AddressBook,
        counterpart: Optional[BridgeNetwork] = None,
        constants: typing.Dict[str, Any] = None,
        roles: typing.Dict[str, str] = None,
    ):
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.network = network
        self.book = book
        self.counterpart = counterpart
        self.constants = constants or dict()
        self.roles = roles or dict()


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self}>"


class SigningRole(Variable):
    """Address of the account signing for a role, e.g. ``$deployer``."""

    def __init__(self, role: str, context: VariableContext):
        self.role = role
        self.roles = context.roles
        self.network_type = context.network.type

    @classmethod
    def is_role(cls, value: str) -> bool:
        return value in SIGNING_ROLES

    def __str__(self) -> str:
        return f"${self.role}"

    def resolve(self) -> Any:
        try:
            return self.roles[self.role]
        except KeyError:
            raise ConfigurationMissing(key=f"{self.role} account for {self.network_type}")


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        self.constant_name = constant_name
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise ValueError(f"Constant '{constant_name}' not found in deployment plan.")

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a plan constant."""
        return value.isupper()

    def __str__(self) -> str:
        return f"${self.constant_name}"

    def resolve(self) -> Any:
        return self.constant_value


class ChainSelector(Variable):
    SELECTOR = "chainSelector"
    DST_SELECTOR = "dstChainSelector"

    def __init__(self, variable: str, context: VariableContext):
        self.variable = variable
        if variable == self.SELECTOR:
            self.network = context.network
        else:
            if context.counterpart is None:
                raise ValueError(
                    f"${self.DST_SELECTOR} used by {context.contract_name} "
                    "but the plan has no counterpart network."
                )
            self.network = context.counterpart

    @classmethod
    def is_selector(cls, value: str) -> bool:
        return value in (cls.SELECTOR, cls.DST_SELECTOR)

    def __str__(self) -> str:
        return f"${self.variable}"

    def resolve(self) -> Any:
        return self.network.chain_selector


class RegistryAddress(Variable):
    """
    A recorded address. Contracts of the current plan are looked up under the
    plan's counterpart; an explicit ``@network`` suffix overrides it.
    """

    def __init__(self, variable: str, context: VariableContext):
        name, _, counterpart = variable.partition(COUNTERPART_DELIMITER)
        if counterpart:
            get_network(counterpart)  # validates the name
        elif name in context.contract_names and context.counterpart:
            counterpart = context.counterpart.name
        self.name = name
        self.counterpart = counterpart or None
        self.network = context.network
        self.book = context.book

    def __str__(self) -> str:
        if self.counterpart:
            return f"${self.name}{COUNTERPART_DELIMITER}{self.counterpart}"
        return f"${self.name}"

    def resolve(self) -> Any:
        return self.book.get(self.name, self.network, self.counterpart)


def _resolve_param(value: Any) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v) for v in value]

    if isinstance(value, Variable):
        return value.resolve()

    return value  # literally a value


def _resolve_params(parameters: OrderedDict) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value)

    return resolved_parameters


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if SigningRole.is_role(variable):
        return SigningRole(variable, context)
    elif ChainSelector.is_selector(variable):
        return ChainSelector(variable, context)
    elif Constant.is_constant(variable) and variable in context.constants:
        return Constant(variable, context)
    else:
        return RegistryAddress(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: Dict, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict) and len(contract_info) == 1:
            contract_names.extend(list(contract_info.keys()))
        else:
            raise DeploymentPlan.Invalid("Malformed contracts section in deployment plan YAML.")

    return contract_names


class ProxyInfo(typing.NamedTuple):
    proxy_name: str
    admin_name: str
    owner: Any


class DeploymentPlan:
    """The ordered contracts of one plan, bound to a network and an address book."""

    class Invalid(Exception):
        """Raised when a deployment plan is malformed."""

    def __init__(
        self,
        config: typing.Dict,
        network: BridgeNetwork,
        book: AddressBook,
        roles: Optional[Dict[str, str]] = None,
        counterpart: Optional[BridgeNetwork] = None,
        path: Optional[Path] = None,
    ):
        self.config = config
        self.network = network
        self.book = book
        self.path = path
        self.counterpart = counterpart
        self.roles = roles or dict()

        deployment = self._validate_deployment(config, network, counterpart)
        self.name = deployment.get("name", path.stem if path else "unnamed")
        self.constants = config.get("constants") or dict()
        self.contract_names = _get_contract_names(config)

        self.contract_types = OrderedDict()
        self.parameters = OrderedDict()
        self.proxies = OrderedDict()
        self.initializers = OrderedDict()
        for contract_info in config["contracts"]:
            self._process_contract(contract_info)

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "DeploymentPlan":
        config = _load_yaml(filepath)
        return cls(config, *args, path=filepath, **kwargs)

    @classmethod
    def for_network(
        cls, plan_name: str, network: BridgeNetwork, *args, plans_dir: Path = PLANS_DIR, **kwargs
    ) -> "DeploymentPlan":
        filepath = plans_dir / network.type / f"{plan_name}.yml"
        if not filepath.exists():
            raise ConfigurationMissing(key=f"deployment plan {filepath}")
        return cls.from_yaml(filepath, network, *args, **kwargs)

    @classmethod
    def _validate_deployment(cls, config, network, counterpart) -> Dict:
        if not isinstance(config, dict):
            raise cls.Invalid("Deployment plan must be a mapping.")
        deployment = config.get("deployment")
        if not deployment:
            raise cls.Invalid("deployment is not set in plan file.")
        network_type = deployment.get("network_type")
        if network_type != network.type:
            raise cls.Invalid(
                f"Plan is for {network_type} networks but {network.name} is {network.type}."
            )
        if not config.get("contracts"):
            raise cls.Invalid("Deployment plan missing 'contracts' field.")
        if deployment.get("per_counterpart", False):
            if counterpart is None:
                raise cls.Invalid("This plan deploys per counterpart network; none was given.")
            if counterpart.name == network.name or counterpart.type != network.type:
                raise cls.Invalid(f"Invalid counterpart {counterpart.name} for {network.name}.")
        elif counterpart is not None:
            raise cls.Invalid("This plan does not take a counterpart network.")
        return deployment

    def _context(self, contract_name: str) -> VariableContext:
        return VariableContext(
            contract_names=self.contract_names,
            contract_name=contract_name,
            network=self.network,
            book=self.book,
            counterpart=self.counterpart,
            constants=self.constants,
            roles=self.roles,
        )

    def _process_contract(self, contract_info) -> None:
        if isinstance(contract_info, str):
            self.contract_types[contract_info] = contract_info
            self.parameters[contract_info] = OrderedDict()
            return

        contract_name = list(contract_info.keys())[0]  # only one entry
        contract_data = contract_info[contract_name] or dict()
        if not isinstance(contract_data, dict):
            raise self.Invalid(f"Malformed deployment parameters for {contract_name}.")

        context = self._context(contract_name)
        self.contract_types[contract_name] = contract_data.get(CONTRACT_TYPE_KEY, contract_name)
        self.parameters[contract_name] = _process_raw_values(
            contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or dict(), context
        )

        if CONTRACT_PROXY_PARAMETER_KEY in contract_data:
            self.proxies[contract_name] = self._proxy_info(
                contract_name, contract_data[CONTRACT_PROXY_PARAMETER_KEY] or dict(), context
            )

        calls = contract_data.get(CONTRACT_INITIALIZE_KEY) or list()
        if calls and contract_name not in self.proxies:
            raise self.Invalid(f"Only proxied contracts can be initialized, not {contract_name}.")
        self.initializers[contract_name] = [self._initializer(c, context) for c in calls]

    def _proxy_info(self, contract_name: str, proxy_data: Dict, context) -> ProxyInfo:
        for proxy_name, (implementation_name, admin_name) in PROXIES.items():
            if implementation_name == contract_name:
                break
        else:
            raise self.Invalid(f"{contract_name} is not a proxied contract.")
        owner = _process_raw_value(proxy_data.get("owner", "$proxyDeployer"), context)
        return ProxyInfo(proxy_name=proxy_name, admin_name=admin_name, owner=owner)

    def _initializer(self, call, context) -> typing.Tuple[str, List[Any]]:
        if not isinstance(call, dict) or len(call) != 1:
            raise self.Invalid(f"Malformed initialize call for {context.contract_name}: {call}")
        method_name, args = list(call.items())[0]
        return method_name, [_process_raw_value(arg, context) for arg in args or list()]

    @property
    def registry_counterpart(self) -> Optional[str]:
        """Counterpart under which this plan's contracts are recorded."""
        return self.counterpart.name if self.counterpart else None

    def contract_type(self, contract_name: str) -> str:
        """Name of the compiled contract deployed under ``contract_name``."""
        return self.contract_types[contract_name]

    def needs_proxy(self, contract_name: str) -> bool:
        return contract_name in self.proxies

    def resolve(self, contract_name: str) -> OrderedDict:
        """Resolves the constructor parameters for a single contract."""
        return _resolve_params(self.parameters[contract_name])

    def resolve_proxy_owner(self, contract_name: str) -> str:
        return _resolve_param(self.proxies[contract_name].owner)

    def initializer_names(self, contract_name: str) -> List[str]:
        return [method_name for method_name, _ in self.initializers.get(contract_name, list())]

    def resolve_initializers(self, contract_name: str) -> List[typing.Tuple[str, List[Any]]]:
        """Resolved (method, args) calls made through the proxy right after deployment."""
        return [
            (method_name, [_resolve_param(arg) for arg in args])
            for method_name, args in self.initializers.get(contract_name, list())
        ]
