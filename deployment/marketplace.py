from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Tuple, Union

import yaml
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.constants import (
    COMMISSION_DECIMALS,
    DEFAULT_INITIALIZER,
    MARKETPLACE,
    MAX_COMMISSION,
)


def to_commission(percentage: Union[str, int, float, Decimal]) -> int:
    """
    Converts a percentage into the marketplace's two-decimal commission units,
    e.g. '2' -> 200 and 2.5 -> 250.
    """
    try:
        value = Decimal(str(percentage).strip().rstrip("%"))
    except InvalidOperation:
        raise ValueError(f"'{percentage}' is not a valid commission percentage")
    if not value.is_finite():
        raise ValueError(f"'{percentage}' is not a valid commission percentage")

    scaled = value.scaleb(COMMISSION_DECIMALS)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"Commission {percentage}% has more than {COMMISSION_DECIMALS} decimal places"
        )
    commission = int(scaled)
    if not 0 <= commission <= MAX_COMMISSION:
        raise ValueError(f"Commission {percentage}% must be between 0 and 100")
    return commission


def from_commission(commission: int) -> Decimal:
    """Converts two-decimal commission units back into a percentage."""
    return Decimal(commission).scaleb(-COMMISSION_DECIMALS)


class MaintainerCommission(NamedTuple):
    """The maintainer and the commission it receives on secondary sales."""

    address: ChecksumAddress
    commission: int

    def as_tuple(self) -> Tuple[ChecksumAddress, int]:
        return to_checksum_address(self.address), self.commission


class MarketplaceParams(NamedTuple):
    root_admin: ChecksumAddress
    maintainer: MaintainerCommission
    primary_commission: int
    nft_contract: ChecksumAddress

    def initializer_args(self) -> List[Any]:
        """Arguments of the marketplace initializer, in ABI order."""
        return [
            to_checksum_address(self.root_admin),
            list(self.maintainer.as_tuple()),
            self.primary_commission,
            to_checksum_address(self.nft_contract),
        ]

    def constants(self) -> Dict[str, Any]:
        return {
            "ROOT_ADMIN": to_checksum_address(self.root_admin),
            "MAINTAINER": to_checksum_address(self.maintainer.address),
            "SECONDARY_COMMISSION": self.maintainer.commission,
            "PRIMARY_COMMISSION": self.primary_commission,
            "NFT_CONTRACT": to_checksum_address(self.nft_contract),
        }


def marketplace_config(
    params: MarketplaceParams,
    chain_id: int,
    filename: str,
    contract_name: str = MARKETPLACE,
    name: str = "marketplace",
) -> Dict[str, Any]:
    """Builds a constructor params document deploying the marketplace behind a proxy."""
    return {
        "deployment": {"name": name, "chain_id": chain_id},
        "artifacts": {"dir": "./deployment/artifacts/", "filename": filename},
        "constants": params.constants(),
        "contracts": [
            {
                contract_name: {
                    "proxy": {
                        "initializer": {
                            "method": DEFAULT_INITIALIZER,
                            "args": [
                                "$ROOT_ADMIN",
                                ["$MAINTAINER", "$SECONDARY_COMMISSION"],
                                "$PRIMARY_COMMISSION",
                                "$NFT_CONTRACT",
                            ],
                        }
                    }
                }
            }
        ],
    }


def upgrade_config(
    chain_id: int, timestamp: datetime, contract_name: str = MARKETPLACE
) -> Dict[str, Any]:
    """
    Builds a params document deploying a new, unproxied implementation.
    The artifact name is unique to the upgrade's timestamp.
    """
    name = f"{contract_name}-upgrade-{timestamp:%Y%m%d%H%M%S}"
    return {
        "deployment": {"name": name, "chain_id": chain_id},
        "artifacts": {"dir": "./deployment/artifacts/", "filename": f"{name}.json"},
        "contracts": [contract_name],
    }


def write_params(config: Dict[str, Any], filepath: Path) -> Path:
    """Writes a constructor params file; existing files are never overwritten."""
    if filepath.exists():
        raise FileExistsError(f"Params file already exists at {filepath}")
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        yaml.safe_dump(config, file, sort_keys=False)
    print(f"(i) Params written to {filepath}")
    return filepath
