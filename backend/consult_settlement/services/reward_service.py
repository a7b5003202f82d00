"""
Reward calculation for consultants.
"""
from decimal import Decimal, ROUND_DOWN
from typing import Union


def calculate_platform_fee(fee_per_hour_in_yen: int, platform_fee_rate_in_percentage: Union[Decimal, str]) -> int:
    """Platform share of the fee, truncated toward zero to whole yen."""
    rate = Decimal(platform_fee_rate_in_percentage)
    if rate < 0 or rate > 100:
        raise ValueError(f"platform fee rate must be between 0 and 100: {rate}")
    if fee_per_hour_in_yen < 0:
        raise ValueError(f"fee must not be negative: {fee_per_hour_in_yen}")
    platform_fee = (Decimal(fee_per_hour_in_yen) * rate / Decimal(100)).quantize(
        Decimal(1), rounding=ROUND_DOWN
    )
    return int(platform_fee)


def calculate_reward(
    fee_per_hour_in_yen: int,
    platform_fee_rate_in_percentage: Union[Decimal, str],
    transfer_fee_in_yen: int
) -> int:
    """
    Amount paid out to the consultant.

    reward = fee - trunc(fee * rate / 100) - transfer fee

    Raises ValueError when the inputs are out of range or the reward would be
    negative.
    """
    if transfer_fee_in_yen < 0:
        raise ValueError(f"transfer fee must not be negative: {transfer_fee_in_yen}")
    platform_fee = calculate_platform_fee(fee_per_hour_in_yen, platform_fee_rate_in_percentage)
    reward = fee_per_hour_in_yen - platform_fee - transfer_fee_in_yen
    if reward < 0:
        raise ValueError(
            f"reward is negative (fee: {fee_per_hour_in_yen}, platform fee: {platform_fee}, "
            f"transfer fee: {transfer_fee_in_yen})"
        )
    return reward
