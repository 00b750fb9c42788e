from pathlib import Path

from ape import project

import deployment

#
# Filesystem
#

DEPLOYMENT_DIR = Path(deployment.__file__).parent
CONSTRUCTOR_PARAMS_DIR = DEPLOYMENT_DIR / "constructor_params"
ARTIFACTS_DIR = DEPLOYMENT_DIR / "artifacts"

#
# Domains
#

MAINNET = "mainnet"
TESTNET = "testnet"

SUPPORTED_DOMAINS = [MAINNET, TESTNET]

LOCAL_NETWORKS = ["local"]

#
# Contracts
#

MARKETPLACE = "McFaydenNFTMarketplaceUpgradable"
MARKETPLACE_V2 = "NFTMarketplaceUpgradableV2"

MARKETPLACE_CONTRACTS = [MARKETPLACE, MARKETPLACE_V2]

OZ_DEPENDENCY_NAME = "openzeppelin"
OZ_DEPENDENCY_VERSION = "5.0.0"

# EIP1967 Admin slot - https://eips.ethereum.org/EIPS/eip-1967#admin-address
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

DEFAULT_INITIALIZER = "initialize"

#
# Marketplace
#

# commissions are expressed in percent with two implied decimals (200 == 2.00%)
COMMISSION_DECIMALS = 2
MAX_COMMISSION = 100 * 10**COMMISSION_DECIMALS

#
# Block explorer
#

ETHERSCAN_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"
ETHERSCAN_V2_API_URL = "https://api.etherscan.io/v2/api"


def get_oz_dependency():
    """Returns the OpenZeppelin dependency declared in ape-config.yaml."""
    return project.dependencies[OZ_DEPENDENCY_NAME][OZ_DEPENDENCY_VERSION]
