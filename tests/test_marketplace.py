from datetime import datetime, timezone
from decimal import Decimal

import pytest

from deployment.constants import CONSTRUCTOR_PARAMS_DIR, MAINNET, MARKETPLACE, MARKETPLACE_V2
from deployment.marketplace import (
    MaintainerCommission,
    MarketplaceParams,
    from_commission,
    marketplace_config,
    to_commission,
    upgrade_config,
    write_params,
)
from deployment.utils import _load_yaml, _validate_config_fields, get_artifact_filepath
from tests.conftest import MAINTAINER, NFT_CONTRACT, POLYGON, ROOT_ADMIN


@pytest.fixture
def marketplace_params():
    return MarketplaceParams(
        root_admin=ROOT_ADMIN.lower(),
        maintainer=MaintainerCommission(address=MAINTAINER.lower(), commission=200),
        primary_commission=200,
        nft_contract=NFT_CONTRACT.lower(),
    )


@pytest.mark.parametrize(
    "percentage,expected",
    [
        ("2", 200),
        ("2.00", 200),
        ("2.5%", 250),
        (2.5, 250),
        (0, 0),
        ("0.01", 1),
        (Decimal("100"), 10000),
    ],
)
def test_to_commission(percentage, expected):
    assert to_commission(percentage) == expected


@pytest.mark.parametrize("percentage", ["2.555", "-1", "100.01", "abc", "inf", "nan", ""])
def test_invalid_commission(percentage):
    with pytest.raises(ValueError):
        to_commission(percentage)


def test_from_commission():
    assert from_commission(200) == Decimal("2")
    assert from_commission(250) == Decimal("2.5")


def test_maintainer_tuple_is_checksummed():
    maintainer = MaintainerCommission(address=MAINTAINER.lower(), commission=200)
    assert maintainer.as_tuple() == (MAINTAINER, 200)


def test_initializer_args(marketplace_params):
    assert marketplace_params.initializer_args() == [
        ROOT_ADMIN,
        [MAINTAINER, 200],
        200,
        NFT_CONTRACT,
    ]


def test_marketplace_config(marketplace_params):
    config = marketplace_config(
        params=marketplace_params, chain_id=POLYGON, filename="marketplace.json"
    )
    assert config["deployment"] == {"name": "marketplace", "chain_id": POLYGON}
    assert config["artifacts"]["filename"] == "marketplace.json"
    assert config["constants"]["ROOT_ADMIN"] == ROOT_ADMIN
    assert config["constants"]["SECONDARY_COMMISSION"] == 200

    (contract,) = config["contracts"]
    initializer = contract[MARKETPLACE]["proxy"]["initializer"]
    assert initializer["method"] == "initialize"
    assert initializer["args"][1] == ["$MAINTAINER", "$SECONDARY_COMMISSION"]


def test_marketplace_config_for_other_contract(marketplace_params):
    config = marketplace_config(
        params=marketplace_params,
        chain_id=POLYGON,
        filename="v2.json",
        contract_name=MARKETPLACE_V2,
        name="v2",
    )
    assert list(config["contracts"][0]) == [MARKETPLACE_V2]


def test_write_params(tmp_path, marketplace_params):
    config = marketplace_config(
        params=marketplace_params, chain_id=POLYGON, filename="marketplace.json"
    )
    filepath = write_params(config=config, filepath=tmp_path / "params" / "marketplace.yml")
    assert _load_yaml(filepath) == config

    with pytest.raises(FileExistsError):
        write_params(config=config, filepath=filepath)


def test_mainnet_params_match_migration():
    config = _load_yaml(CONSTRUCTOR_PARAMS_DIR / MAINNET / "marketplace.yml")
    expected = MarketplaceParams(
        root_admin=ROOT_ADMIN,
        maintainer=MaintainerCommission(address=MAINTAINER, commission=to_commission("2.00")),
        primary_commission=to_commission("2.00"),
        nft_contract=NFT_CONTRACT,
    )
    constants = config["constants"]
    assert constants["ROOT_ADMIN"].lower() == ROOT_ADMIN.lower()
    assert constants["MAINTAINER"].lower() == MAINTAINER.lower()
    assert constants["NFT_CONTRACT"].lower() == NFT_CONTRACT.lower()
    assert constants["SECONDARY_COMMISSION"] == expected.maintainer.commission
    assert constants["PRIMARY_COMMISSION"] == expected.primary_commission

    generated = marketplace_config(params=expected, chain_id=POLYGON, filename="unused.json")
    assert config["contracts"] == generated["contracts"]


def test_upgrade_config():
    timestamp = datetime(2024, 5, 1, 12, 30, 5, tzinfo=timezone.utc)
    config = upgrade_config(chain_id=POLYGON, timestamp=timestamp)
    assert _validate_config_fields(config) == POLYGON
    assert config["contracts"] == [MARKETPLACE]
    assert "constants" not in config
    assert get_artifact_filepath(config).name == f"{MARKETPLACE}-upgrade-20240501123005.json"


def test_upgrade_configs_do_not_share_artifacts():
    first = upgrade_config(chain_id=POLYGON, timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc))
    second = upgrade_config(chain_id=POLYGON, timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc))
    assert get_artifact_filepath(first) != get_artifact_filepath(second)
