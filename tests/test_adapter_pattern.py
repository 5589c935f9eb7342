import unittest
from typing import Protocol
from unittest.mock import MagicMock

from typewire import Container, Ref


class Contains:  # noqa: PLW1641
    def __init__(self, substring):
        self.substring = substring

    def __repr__(self):
        return f"Contains({self.substring!r})"

    def __eq__(self, other):
        return isinstance(other, str) and self.substring in other


class PaymentClient(Protocol):
    def charge(self, order_id: str, amount_cents: int) -> None: ...


class InfoLogger(Protocol):
    def info(self, msg: object, *args: object) -> None: ...


class NullLogger:
    def info(self, msg: object, *args: object) -> None:
        pass


class StripeSdk:
    def __init__(self) -> None:
        self.closed = False

    def pay(self, amount_usd: float, reference: str) -> bool:
        return True

    def close(self) -> None:
        self.closed = True


class StripeAdapter:
    def __init__(self, sdk: StripeSdk, logger: InfoLogger) -> None:
        self._logger = logger
        self._sdk = sdk
        self._usd_per_cent = 0.0125

    def charge(self, order_id: str, amount_cents: int) -> None:
        self._logger.info("adapting to stripe sdk api")
        amount_usd = amount_cents * self._usd_per_cent
        ok = self._sdk.pay(amount_usd, reference=order_id)
        if not ok:
            msg = "Stripe payment failed"
            raise RuntimeError(msg)


def new_payment_client(sdk: StripeSdk, logger: InfoLogger) -> PaymentClient:
    return StripeAdapter(sdk, logger)


class TestWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.stripe_sdk = StripeSdk()
        self.stripe_sdk.pay = MagicMock(wraps=self.stripe_sdk.pay)
        self.logger = NullLogger()
        self.logger.info = MagicMock(wraps=self.logger.info)

        def new_sdk() -> StripeSdk:
            return self.stripe_sdk

        def new_logger() -> InfoLogger:
            return self.logger

        self.cont = Container(new_payment_client, new_sdk, new_logger)

    def test_consumer_calls_adaptee(self):
        def checkout(client: PaymentClient) -> None:
            client.charge("order-123", 5000)

        self.cont.consume(checkout)

        assert self.stripe_sdk.pay.call_count == 1
        assert self.stripe_sdk.pay.call_args[0][0] == 0.0125 * 5000
        assert self.stripe_sdk.pay.call_args[1]["reference"] == "order-123"

        assert self.logger.info.call_args[0][0] == Contains("stripe sdk")

    def test_injected_client_is_the_consumed_client(self):
        ref = Ref(PaymentClient)
        self.cont.inject(ref)

        seen = []

        def checkout(client: PaymentClient) -> None:
            seen.append(client)

        self.cont.consume(checkout)
        assert seen == [ref.get()]

    def test_close_releases_sdk(self):
        self.cont.resolve(PaymentClient)
        self.cont.close()
        assert self.stripe_sdk.closed


class TestAutoWiringAdapterThirdPartySDK(unittest.TestCase):
    cont: Container

    def setUp(self):
        def new_logger() -> InfoLogger:
            return NullLogger()

        self.cont = Container(new_payment_client, StripeSdk, new_logger)

    def test_adapter_calls_adaptee(self):
        client: PaymentClient = self.cont.resolve(PaymentClient)
        client.charge("order-123", 5000)

        assert isinstance(client, StripeAdapter)
        assert isinstance(self.cont.resolve(StripeSdk), StripeSdk)
