import os
import typing
from collections import OrderedDict
from typing import Any, List

from ape import networks, project
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.exceptions import ContractLogicError
from ethpm_types import MethodABI
from web3.auto import w3

from bridge_ops.confirm import confirm_constructor, confirm_network, confirm_transaction
from bridge_ops.errors import translate_revert
from bridge_ops.ledger import ApeLedger
from bridge_ops.networks import is_local_network
from bridge_ops.params import DeploymentPlan
from bridge_ops.tasks import (
    ChainContext,
    DeploymentStep,
    Outcome,
    StepResult,
    execute_steps,
    initialize_proxy,
    plan_proxy_deployment,
    record_deployment,
    upgrade_proxy,
)

PROXY_ADMIN_CONTRACT = "ProxyAdmin"
PROXY_CONTRACT = "TransparentUpgradeableProxy"

def check_etherscan_plugin() -> None:
    """
    Checks that the ape-etherscan plugin is installed and that
    the appropriate API key environment variable is set.
    """
    if is_local_network():
        # unnecessary for local deployment
        return
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to use this script.")
    ecosystem_name = networks.provider.network.ecosystem.name
    explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
    if not explorer_envvar or not os.environ.get(explorer_envvar):
        raise ValueError(f"{explorer_envvar or 'Explorer API key'} is not set.")


def check_infura_plugin() -> None:
    """Checks that the ape-infura plugin is installed."""
    if is_local_network():
        return  # unnecessary for local deployment
    if networks.provider.name != "infura":
        return  # unnecessary when using a provider different than infura
    try:
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES
    except ImportError:
        raise ImportError("Please install the ape-infura plugin to use this script.")
    for envvar in _ENVIRONMENT_VARIABLE_NAMES:
        if os.environ.get(envvar):
            break
    else:
        raise ValueError(
            f"No Infura API key found in "
            f"environment variables: {', '.join(_ENVIRONMENT_VARIABLE_NAMES)}"
        )


def check_plugins(verify: bool = True) -> None:
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()
    check_infura_plugin()


def verify_contracts(contracts: List[ContractInstance]) -> None:
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Verifying {instance.contract_type.name}...")
        explorer.publish_contract(instance.address)


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            return getattr(dependency_api, contract)
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise DeploymentPlan.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        if abi_input.name != name:
            raise DeploymentPlan.Invalid(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.name}'."
            )
        if not w3.is_encodable(abi_input.type, value):
            raise DeploymentPlan.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        if hasattr(self._account, "set_autosign"):
            # test accounts always sign
            self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(self, method: ContractTransactionHandler, *args, **kwargs) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        if kwargs.get("value"):
            message = f"{message}\n\tvalue={kwargs['value']} wei"
        print(message)
        if not self._autosign:
            confirm_transaction()

        try:
            return method(*args, sender=self._account, **kwargs)
        except ContractLogicError as e:
            translated = translate_revert(e, self._account.address)
            if translated is e:
                raise
            raise translated from e


class Deployer(Transactor):
    """
    Deploys the contracts of a plan, proxies included. Every address is
    recorded in the plan's address book as soon as its deployment is
    submitted; the sequence stops at the first step that is not yet final.
    """

    def __init__(
        self,
        plan: DeploymentPlan,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        proxy_account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
    ):
        super().__init__(account, autosign)
        check_plugins(verify=verify)
        self.plan = plan
        self.network = plan.network
        self.book = plan.book
        self.verify = verify
        self.ledger = ApeLedger(self.network.name)
        if proxy_account is None or proxy_account.address == self._account.address:
            self.proxy_transactor = self
        else:
            self.proxy_transactor = Transactor(proxy_account, autosign)
        self.deployments: List[ContractInstance] = list()

        self._print_deployment_info()
        if not self._autosign:
            confirm_network(self.network)

    @property
    def context(self) -> ChainContext:
        return ChainContext(network=self.network, ledger=self.ledger, transactor=self)

    @property
    def proxy_context(self) -> ChainContext:
        return self.context._replace(transactor=self.proxy_transactor)

    def _get_kwargs(self) -> typing.Dict[str, Any]:
        """Returns the deployment kwargs."""
        return {"publish": self.verify}

    def _deploy_contract(
        self,
        container: ContractContainer,
        resolved_params: OrderedDict,
        registry_name: str,
        account: AccountAPI,
    ) -> StepResult:
        contract_name = container.contract_type.name
        _validate_constructor_abi_inputs(
            contract_name, container.constructor.abi.inputs, resolved_params
        )
        if not self._autosign:
            confirm_constructor(contract_name, resolved_params, self.network)

        instance = account.deploy(container, *resolved_params.values(), **self._get_kwargs())
        self.deployments.append(instance)
        return record_deployment(
            self.context,
            self.book,
            registry_name,
            instance,
            counterpart=self.plan.registry_counterpart,
        )

    def deploy_implementation(self, contract_name: str) -> StepResult:
        container = get_contract_container(self.plan.contract_type(contract_name))
        return self._deploy_contract(
            container,
            self.plan.resolve(contract_name),
            registry_name=contract_name,
            account=self.get_account(),
        )

    def deploy_proxy_admin(self, contract_name: str) -> StepResult:
        proxy_info = self.plan.proxies[contract_name]
        params = OrderedDict(initialOwner=self.plan.resolve_proxy_owner(contract_name))
        return self._deploy_contract(
            get_contract_container(PROXY_ADMIN_CONTRACT),
            params,
            registry_name=proxy_info.admin_name,
            account=self.proxy_transactor.get_account(),
        )

    def deploy_proxy(self, contract_name: str) -> StepResult:
        proxy_info = self.plan.proxies[contract_name]
        counterpart = self.plan.registry_counterpart
        params = OrderedDict(
            _logic=self.book.get(contract_name, self.network, counterpart),
            admin_=self.book.get(proxy_info.admin_name, self.network, counterpart),
            _data=b"",
        )
        result = self._deploy_contract(
            get_contract_container(PROXY_CONTRACT),
            params,
            registry_name=proxy_info.proxy_name,
            account=self.proxy_transactor.get_account(),
        )
        print(f"\nWrapping {contract_name} into {PROXY_CONTRACT} at {result.value.address}.")
        return result

    def proxied(self, contract_name: str) -> ContractInstance:
        """The implementation's ABI at the proxy address."""
        proxy_name = self.plan.proxies[contract_name].proxy_name
        address = self.book.get(proxy_name, self.network, self.plan.registry_counterpart)
        container = get_contract_container(self.plan.contract_type(contract_name))
        return container.at(address)

    def initialize(self, contract_name: str) -> StepResult:
        return initialize_proxy(
            self.context,
            self.book,
            self.plan.proxies[contract_name].proxy_name,
            self.proxied(contract_name),
            self.plan.resolve_initializers(contract_name),
            counterpart=self.plan.registry_counterpart,
        )

    def upgrade(self, contract_name: str, implementation: str) -> StepResult:
        proxy_info = self.plan.proxies[contract_name]
        counterpart = self.plan.registry_counterpart
        proxy_admin = get_contract_container(PROXY_ADMIN_CONTRACT).at(
            self.book.get(proxy_info.admin_name, self.network, counterpart)
        )
        return upgrade_proxy(
            self.proxy_context,
            proxy_admin,
            self.book.get(proxy_info.proxy_name, self.network, counterpart),
            implementation,
        )

    def deploy(self, contract_name: str, new_implementation: bool = False) -> StepResult:
        """
        Brings one plan contract up to date: deploys whatever is missing in order
        and upgrades an existing proxy when a new implementation is requested.
        A PENDING result means a step was submitted but is not final yet.
        Otherwise the result's ``value`` is the contract (at its proxy, if proxied).
        """
        counterpart = self.plan.registry_counterpart
        if not self.plan.needs_proxy(contract_name):
            if new_implementation or not self.book.find(contract_name, self.network, counterpart):
                return self.deploy_implementation(contract_name)
            print(f"(i) {contract_name} already deployed on {self.network.name}; skipping.")
            container = get_contract_container(self.plan.contract_type(contract_name))
            instance = container.at(self.book.get(contract_name, self.network, counterpart))
            return StepResult(Outcome.SKIPPED, value=instance)

        steps = plan_proxy_deployment(
            self.book,
            self.network,
            self.plan.proxies[contract_name].proxy_name,
            counterpart=counterpart,
            new_implementation=new_implementation,
            initializers=self.plan.initializer_names(contract_name),
        )
        if not steps:
            print(f"(i) {contract_name} stack already deployed on {self.network.name}; skipping.")
        actions = {
            DeploymentStep.IMPLEMENTATION: lambda: self.deploy_implementation(contract_name),
            DeploymentStep.PROXY_ADMIN: lambda: self.deploy_proxy_admin(contract_name),
            DeploymentStep.PROXY: lambda: self.deploy_proxy(contract_name),
            DeploymentStep.INITIALIZE: lambda: self.initialize(contract_name),
            DeploymentStep.UPGRADE: lambda: self.upgrade(
                contract_name, self.book.get(contract_name, self.network, counterpart)
            ),
        }
        result = execute_steps(self.context, steps, actions)
        if result.outcome is Outcome.PENDING:
            return result
        return result._replace(value=self.proxied(contract_name))

    def finalize(self) -> None:
        """Optionally publishes this session's deployments to block explorers."""
        if self.verify and self.deployments:
            verify_contracts(contracts=self.deployments)

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_account().address}",
            f"Proxy account: {self.proxy_transactor.get_account().address}",
            f"Plan: {self.plan.path or self.plan.name}",
            f"Address book: {self.book.filepath}",
            f"Verify: {self.verify}",
            f"Network: {self.network.name}",
            f"Chain ID: {self.network.chain_id}",
            f"Confirmations: {self.network.confirmations}",
            sep="\n",
        )
