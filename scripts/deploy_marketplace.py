#!/usr/bin/python3

from ape import project

from deployment.constants import ARTIFACTS_DIR, CONSTRUCTOR_PARAMS_DIR, MAINNET
from deployment.params import Deployer
from deployment.registry import publish_to_domain

VERIFY = True
CONSTRUCTOR_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / MAINNET / "marketplace.yml"
DOMAIN_REGISTRY_FILEPATH = ARTIFACTS_DIR / f"{MAINNET}.json"


def main():
    """
    Deploys McFaydenNFTMarketplaceUpgradable behind a TransparentUpgradeableProxy
    and initializes it with the root admin, maintainer commission, primary
    commission and NFT contract configured for mainnet.
    """

    deployer = Deployer.from_yaml(filepath=CONSTRUCTOR_PARAMS_FILEPATH, verify=VERIFY)

    marketplace = deployer.deploy(project.McFaydenNFTMarketplaceUpgradable)

    deployments = [
        marketplace,
    ]

    deployer.finalize(deployments=deployments)
    publish_to_domain(
        registry_filepath=deployer.registry_filepath,
        domain_filepath=DOMAIN_REGISTRY_FILEPATH,
    )
