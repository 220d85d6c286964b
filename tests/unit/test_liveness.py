# pylint: disable=missing-module-docstring,missing-function-docstring
from orchestrator.liveness import SubscriptionToken


class CountingUnsubscribe:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


def test_token_accepts_only_its_generation_while_alive():
    token = SubscriptionToken(generation=2)

    assert token.accepts(2)
    assert not token.accepts(3)

    token.invalidate()

    assert not token.accepts(2)


def test_invalidate_unsubscribes_exactly_once():
    unsubscribe = CountingUnsubscribe()
    token = SubscriptionToken(generation=0)
    token.bind(unsubscribe)

    assert token.invalidate() is True
    assert token.invalidate() is False
    assert unsubscribe.calls == 1


def test_bind_after_invalidate_releases_immediately():
    unsubscribe = CountingUnsubscribe()
    token = SubscriptionToken(generation=0)
    token.invalidate()

    token.bind(unsubscribe)

    assert unsubscribe.calls == 1
    assert token.invalidate() is False
    assert unsubscribe.calls == 1
