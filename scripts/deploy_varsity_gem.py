#!/usr/bin/python3

from ape import project

from deployment.constants import ARTIFACTS_DIR, CONSTRUCTOR_PARAMS_DIR, TESTNET
from deployment.params import Deployer
from deployment.registry import publish_to_domain

VERIFY = False
CONSTRUCTOR_PARAMS_FILEPATH = CONSTRUCTOR_PARAMS_DIR / TESTNET / "varsity-gem.yml"
DOMAIN_REGISTRY_FILEPATH = ARTIFACTS_DIR / f"{TESTNET}.json"


def main():
    """
    Deploys the VarsityGem (VG) collection on the previous marketplace
    generation, NFTMarketplaceUpgradableV2.
    """

    deployer = Deployer.from_yaml(filepath=CONSTRUCTOR_PARAMS_FILEPATH, verify=VERIFY)
    varsity_gem = deployer.deploy(project.NFTMarketplaceUpgradableV2)
    deployer.finalize(deployments=[varsity_gem])
    publish_to_domain(
        registry_filepath=deployer.registry_filepath,
        domain_filepath=DOMAIN_REGISTRY_FILEPATH,
    )
