from eth_utils import to_hex


class BridgeOpsError(Exception):
    """Base class for every error raised by the bridge tooling."""


class ConfigurationMissing(BridgeOpsError):
    """A prior deployment address or credential is absent from configuration."""

    def __init__(self, key: str, hint: str = ""):
        self.key = key
        message = f"Missing configuration for '{key}'."
        if hint:
            message = f"{message} {hint}"
        super().__init__(message)


class Unauthorized(BridgeOpsError):
    """The signing account does not hold the role required by the call."""

    def __init__(self, account: str, role: str):
        self.account = account
        self.role = role
        super().__init__(f"account={account}, neededRole={role}")


class AdmissionRejected(BridgeOpsError):
    """A transfer exceeds the available volume of its rate bucket."""

    def __init__(self, amount: int, available: int):
        self.amount = amount
        self.available = available
        super().__init__(f"Requested {amount} units but only {available} available.")


class FinalityTimeout(BridgeOpsError):
    """
    The confirmation wait ran out. The transaction may still land,
    so it must not be resubmitted.
    """

    def __init__(self, txn_hash: str, confirmations: int, timeout: float):
        self.txn_hash = txn_hash
        self.confirmations = confirmations
        self.timeout = timeout
        super().__init__(
            f"Transaction {txn_hash} not confirmed ({confirmations} blocks) after {timeout}s."
        )


class NotYetObserved(BridgeOpsError):
    """A cross-chain settlement event was not seen before the polling bound."""

    def __init__(self, event_name: str, timeout: float):
        self.event_name = event_name
        self.timeout = timeout
        super().__init__(f"{event_name} event not observed after {timeout}s.")


# revert names raised by the bridge and its OpenZeppelin dependencies
ADMISSION_REVERTS = ("RateLimitExceeded", "AmountExceedsAvailableVolume")
AUTHORIZATION_REVERTS = (
    "AccessControlUnauthorizedAccount",
    "OwnableUnauthorizedAccount",
    "Unauthorized",
    "UnauthorizedCaller",
)


def revert_name(error: Exception) -> str:
    """Custom error name of a contract revert, from its ABI or else its message."""
    abi = getattr(error, "abi", None)
    if abi is not None:
        return abi.name
    message = getattr(error, "message", None) or str(error)
    return message.split("(")[0].strip()


def translate_revert(error: Exception, account: str) -> Exception:
    """
    Maps a contract revert onto the error types above where one applies,
    keeping admission rejections apart from authorization failures.
    Any other revert is returned unchanged.
    """
    name = revert_name(error)
    inputs = getattr(error, "inputs", None) or dict()
    if name in ADMISSION_REVERTS:
        return AdmissionRejected(
            amount=inputs.get("amount", 0), available=inputs.get("available", 0)
        )
    if name in AUTHORIZATION_REVERTS:
        role = inputs.get("neededRole", name)
        if isinstance(role, bytes):
            role = to_hex(role)
        return Unauthorized(account=inputs.get("account", account), role=str(role))
    return error
