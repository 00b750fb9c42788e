import pytest
from ape import networks

from deployment.marketplace import (
    MaintainerCommission,
    MarketplaceParams,
    marketplace_config,
    write_params,
)
from deployment.params import Deployer, _resolve_param, get_proxy_admin_address
from tests.conftest import MAINTAINER, NFT_CONTRACT, ROOT_ADMIN

MARKETPLACE_MOCK = "MarketplaceInitializableMock"
COMMISSION = 200


def _deployer(params_filepath, account) -> Deployer:
    return Deployer.from_yaml(
        filepath=params_filepath, verify=False, account=account, autosign=True
    )


@pytest.fixture(scope="module")
def params_filepath(tmp_path_factory, chain):
    params = MarketplaceParams(
        root_admin=ROOT_ADMIN,
        maintainer=MaintainerCommission(address=MAINTAINER, commission=COMMISSION),
        primary_commission=COMMISSION,
        nft_contract=NFT_CONTRACT,
    )
    config = marketplace_config(
        params=params,
        chain_id=chain.chain_id,
        filename="marketplace-local.json",
        contract_name=MARKETPLACE_MOCK,
        name="marketplace-local",
    )
    output_dir = tmp_path_factory.mktemp("deployment")
    config["artifacts"]["dir"] = str(output_dir / "artifacts")
    return write_params(config=config, filepath=output_dir / "marketplace-local.yml")


@pytest.fixture(scope="module")
def marketplace(project, params_filepath, deployer_account):
    deployer = _deployer(params_filepath, deployer_account)
    return deployer.deploy(project.MarketplaceInitializableMock)


def test_proxy_is_initialized(marketplace):
    assert marketplace.contract_type.name == MARKETPLACE_MOCK
    assert marketplace.initialized()
    assert marketplace.rootAdmin() == ROOT_ADMIN
    assert marketplace.maintainer() == MAINTAINER
    assert marketplace.secondaryCommission() == COMMISSION
    assert marketplace.primaryCommission() == COMMISSION
    assert marketplace.nftContract() == NFT_CONTRACT


def test_implementation_is_not_initialized(project, marketplace):
    proxy_info = networks.provider.network.ecosystem.get_proxy_info(marketplace.address)
    implementation = project.MarketplaceInitializableMock.at(proxy_info.target)
    assert implementation.address != marketplace.address
    assert not implementation.initialized()


def test_proxy_admin_is_owned_by_deployer(oz_dependency, marketplace, deployer_account):
    admin_address = get_proxy_admin_address(marketplace.address)
    assert oz_dependency.ProxyAdmin.at(admin_address).owner() == deployer_account.address


def test_proxy_admin_of_non_proxy(marketplace):
    proxy_info = networks.provider.network.ecosystem.get_proxy_info(marketplace.address)
    with pytest.raises(ValueError, match="Admin slot for contract at .* is empty"):
        get_proxy_admin_address(proxy_info.target)


def test_deployer_account_resolves_during_validation(
    monkeypatch, params_filepath, marketplace, account1
):
    owners = []

    def capture_owners(contracts_proxy_info):
        for proxy_info in contracts_proxy_info.values():
            owners.append(_resolve_param(proxy_info.constructor_params["initialOwner"]))

    monkeypatch.setattr("deployment.params.validate_proxy_info", capture_owners)
    _deployer(params_filepath, account1)
    assert owners == [account1.address]


def test_upgrade_requires_proxy_admin_owner(project, params_filepath, marketplace, account1):
    implementation = project.MarketplaceInitializableMockV2.deploy(sender=account1)
    deployer = _deployer(params_filepath, account1)
    with pytest.raises(ValueError, match="is owned by"):
        deployer.upgradeTo(implementation, marketplace.address)


def test_upgrade_to_new_implementation(project, params_filepath, marketplace, deployer_account):
    implementation = project.MarketplaceInitializableMockV2.deploy(sender=deployer_account)
    deployer = _deployer(params_filepath, deployer_account)

    upgraded = deployer.upgradeTo(implementation, marketplace.address)

    assert upgraded.address == marketplace.address
    assert upgraded.version() == 2
    assert upgraded.rootAdmin() == ROOT_ADMIN
    proxy_info = networks.provider.network.ecosystem.get_proxy_info(marketplace.address)
    assert proxy_info.target == implementation.address
