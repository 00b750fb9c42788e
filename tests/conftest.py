import pytest
from eth_utils import to_checksum_address

from deployment.constants import get_oz_dependency
from deployment.registry import RegistryEntry

# Common constants
ROOT_ADMIN = to_checksum_address("0x1f6ceaa4d3ef6e16d113adc8080320de2d5d8499")
MAINTAINER = to_checksum_address("0xdfad87e691a73d8ea78198d753e1b7fd0051d431")
NFT_CONTRACT = to_checksum_address("0x3ad77f18e61bc4fc18b3ba56670248d2628415fa")

POLYGON = 137
AMOY = 80002

# already in registry order: (type, name)
MARKETPLACE_ABI = [
    {"type": "constructor", "stateMutability": "nonpayable", "inputs": []},
    {
        "type": "function",
        "name": "initialize",
        "stateMutability": "nonpayable",
        "inputs": [],
        "outputs": [],
    },
]


# Utility functions
def registry_entry(chain_id=POLYGON, name="McFaydenNFTMarketplaceUpgradable", **overrides):
    fields = dict(
        chain_id=chain_id,
        name=name,
        address=NFT_CONTRACT,
        abi=MARKETPLACE_ABI,
        tx_hash="0x" + "ab" * 32,
        block_number=1234,
        deployer=ROOT_ADMIN,
    )
    fields.update(overrides)
    return RegistryEntry(**fields)


# Fixtures
@pytest.fixture
def marketplace_entry():
    return registry_entry()


@pytest.fixture
def registry_filepath(tmp_path):
    return tmp_path / "artifacts" / "marketplace.json"


@pytest.fixture(scope="session")
def oz_dependency():
    return get_oz_dependency()


@pytest.fixture(scope="session")
def deployer_account(accounts):
    return accounts[0]


@pytest.fixture(scope="session")
def account1(accounts):
    return accounts[1]
