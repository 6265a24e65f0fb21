from pathlib import Path

import bridge_ops

#
# Filesystem
#

PACKAGE_DIR = Path(bridge_ops.__file__).parent
PLANS_DIR = PACKAGE_DIR / "plans"
ARTIFACTS_DIR = PACKAGE_DIR / "artifacts"

#
# Network types
#

TESTNET = "testnet"
MAINNET = "mainnet"
LOCALHOST = "localhost"

SUPPORTED_NETWORK_TYPES = [TESTNET, MAINNET, LOCALHOST]

#
# Signing roles
#

DEPLOYER = "deployer"
PROXY_DEPLOYER = "proxyDeployer"
RATE_LIMIT_ADMIN = "rateLimitAdmin"

SIGNING_ROLES = [DEPLOYER, PROXY_DEPLOYER, RATE_LIMIT_ADMIN]

#
# Registry names
#

BRIDGE = "LancaCanonicalBridge"
BRIDGE_PROXY = "LancaCanonicalBridgeProxy"
BRIDGE_PROXY_ADMIN = "LancaCanonicalBridgeProxyAdmin"
POOL = "LancaCanonicalBridgePool"
POOL_PROXY = "LancaCanonicalBridgePoolProxy"
POOL_PROXY_ADMIN = "LancaCanonicalBridgePoolProxyAdmin"
FIAT_TOKEN = "FiatToken"
FIAT_TOKEN_PROXY = "FiatTokenProxy"
FIAT_TOKEN_PROXY_ADMIN = "FiatTokenProxyAdmin"
PAUSE = "ConceroPause"
USDC = "USDC"

# proxy registry name -> (implementation name, proxy admin name)
PROXIES = {
    BRIDGE_PROXY: (BRIDGE, BRIDGE_PROXY_ADMIN),
    POOL_PROXY: (POOL, POOL_PROXY_ADMIN),
    FIAT_TOKEN_PROXY: (FIAT_TOKEN, FIAT_TOKEN_PROXY_ADMIN),
}

#
# Proxies
#

# https://eips.ethereum.org/EIPS/eip-1967
EIP1967_IMPLEMENTATION_SLOT = 0x360894A13BA1A3210667C828492DB98DCA3E2076CC3735A920A3CA505D382BBC
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

#
# Token
#

USDC_DECIMALS = 6
USDC_UNIT = "mwei"  # 10 ** 6

ZERO_ADDRESS = "0x" + "0" * 40

# human-readable USDC strings
DEFAULT_RATE_LIMITS = {
    "out_max": "10000",
    "out_refill": "1",
    "in_max": "10000",
    "in_refill": "1",
}

DEFAULT_MINTER_ALLOWANCE = "1000000"

DEFAULT_GAS_LIMIT = 300_000

#
# Waiting
#

FINALITY_TIMEOUT = 600  # seconds
FINALITY_POLL_INTERVAL = 2
EVENT_TIMEOUT = 300
EVENT_POLL_INTERVAL = 5
EVENT_LOOKBACK_BLOCKS = 100

# writes per configuration step when concurrent updates keep changing the state
RECONCILE_ATTEMPTS = 2

#
# Events
#

TOKEN_SENT = "TokenSent"
TOKEN_RECEIVED = "TokenReceived"  # L2 bridges
BRIDGE_DELIVERED = "BridgeDelivered"  # L1 bridge
