# tests/test_identity.py

from __future__ import annotations

import pytest

from taskline.core.identity import SessionIdentity


def test_listeners_fire_only_on_change() -> None:
    identity = SessionIdentity()
    seen: list[str | None] = []
    unsubscribe = identity.subscribe(seen.append)

    assert identity.is_guest
    identity.logout()
    identity.login(" abc ")
    identity.login("abc")
    identity.logout()

    assert seen == ["abc", None]

    unsubscribe()
    identity.login("xyz")
    assert seen == ["abc", None]
    assert identity.token == "xyz"


def test_empty_token_is_rejected() -> None:
    identity = SessionIdentity("  ")
    assert identity.is_guest
    with pytest.raises(ValueError):
        identity.login("   ")


def test_failing_listener_does_not_block_others() -> None:
    identity = SessionIdentity()
    seen: list[str | None] = []

    def broken(token: str | None) -> None:
        raise RuntimeError("boom")

    identity.subscribe(broken)
    identity.subscribe(seen.append)
    identity.login("t")

    assert seen == ["t"]
