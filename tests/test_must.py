import logging

import pytest

from typewire import Container, Ref, must_new


class Conn:
    def __init__(self) -> None:
        self.closed = False

    def close(self) -> None:
        self.closed = True
        msg = "connection reset"
        raise ConnectionError(msg)


class Missing: ...


def test_must_new_returns_container():
    c = must_new(Conn)
    assert Conn in c


def test_must_new_exits_on_invalid_provider(caplog):
    def bad():
        return None

    with caplog.at_level(logging.CRITICAL, logger="typewire"), pytest.raises(SystemExit) as ctx:
        must_new(bad)

    assert ctx.value.code == 1
    assert "Not a provider function" in caplog.text


def test_must_consume_exits_without_invoking_callback():
    c = Container()
    called = []

    def consumer(m: Missing) -> None:
        called.append(m)

    with pytest.raises(SystemExit):
        c.must_consume(consumer)
    assert called == []


def test_must_consume_invokes_callback():
    c = Container(Conn)
    called = []

    def consumer(conn: Conn) -> None:
        called.append(conn)

    c.must_consume(consumer)
    assert called == [c.resolve(Conn)]


def test_must_inject_sets_reference():
    c = Container(Conn)
    ref = Ref(Conn)
    c.must_inject(ref)
    assert ref.get() is c.resolve(Conn)


def test_must_inject_exits_on_failure():
    c = Container()
    ref = Ref(Missing)
    with pytest.raises(SystemExit) as ctx:
        c.must_inject(ref)
    assert not ref.is_set
    assert "Not provided" in str(ctx.value.__cause__)


def test_must_close_exits_after_closing_everything():
    c = Container(Conn)
    conn = c.resolve(Conn)
    with pytest.raises(SystemExit):
        c.must_close()
    assert conn.closed
    assert c.closed
