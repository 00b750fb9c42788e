import click
from eth_utils import to_checksum_address

from deployment.marketplace import from_commission, to_commission


class MinInt(click.ParamType):
    name = "minint"

    def __init__(self, min_value):
        self.min_value = min_value

    def convert(self, value, param, ctx):
        try:
            ivalue = int(value)
        except ValueError:
            self.fail(f"{value} is not a valid integer", param, ctx)
        if ivalue < self.min_value:
            self.fail(
                f"{value} is less than the minimum allowed value of {self.min_value}", param, ctx
            )
        return ivalue


class ChecksumAddress(click.ParamType):
    name = "checksum_address"

    def convert(self, value, param, ctx):
        try:
            value = to_checksum_address(value=value)
        except ValueError:
            self.fail(f"{value} is not a valid ethereum address", param, ctx)
        else:
            return value


class Percentage(click.ParamType):
    """
    A commission percentage between 0 and 100 with at most two decimals,
    e.g. '2.5' or '2.50%'.
    """

    name = "percentage"

    def convert(self, value, param, ctx):
        try:
            commission = to_commission(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)
        return from_commission(commission)
