"""Runtime settings for the fulfillment context, read from the environment."""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class FulfillmentSettings:
    """Knobs for adapter selection and the orchestration policy.

    release_stock_on_payment_failure:
        When enabled, a declined payment cancels the order and returns its
        reserved stock. Disabled by default: stock stays held until the
        caller retries the payment or cancels the order.
    """

    payment_gateway: str = "fake"
    carrier_adapter: str = "fake"
    require_payment_before_shipping: bool = True
    release_stock_on_payment_failure: bool = False

    @classmethod
    def from_env(cls) -> "FulfillmentSettings":
        return cls(
            payment_gateway=os.getenv("PAYMENT_GATEWAY", "fake"),
            carrier_adapter=os.getenv("CARRIER_ADAPTER", "fake"),
            require_payment_before_shipping=_env_flag("REQUIRE_PAYMENT_BEFORE_SHIPPING", True),
            release_stock_on_payment_failure=_env_flag("RELEASE_STOCK_ON_PAYMENT_FAILURE", False),
        )
