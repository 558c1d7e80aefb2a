"""Tests for parameter object property access and binding."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest

from sqlmapper.executor import DefaultParameterBinder
from sqlmapper.mapping import CommandType, MappedStatement, SqlSource
from sqlmapper.utils.properties import get_property, has_property, is_simple_value, set_property


@dataclass
class Address:
    city: str


@dataclass
class Customer:
    name: str
    address: Address
    tags: dict = field(default_factory=dict)


def test_nested_get_and_set() -> None:
    customer = Customer("ann", Address("Oslo"))

    assert get_property(customer, "address.city") == "Oslo"
    assert get_property({"customer": customer}, "customer.name") == "ann"

    set_property(customer, "address.city", "Bergen")
    set_property(customer, "tags.vip", True)

    assert customer.address.city == "Bergen"
    assert customer.tags == {"vip": True}


def test_missing_property() -> None:
    assert not has_property({"a": 1}, "b")
    assert has_property({"a": {"b": None}}, "a.b")
    with pytest.raises(KeyError, match="no property named 'b'"):
        get_property({"a": 1}, "b")


@pytest.mark.parametrize("value", [None, 1, "x", 1.5, Decimal("1"), date(2024, 1, 1)])
def test_simple_values(value: object) -> None:
    assert is_simple_value(value)


def test_binder_coerces_values() -> None:
    statement = MappedStatement(
        "orders.add",
        SqlSource("INSERT INTO orders VALUES (#{paid}, #{total}, #{day}, #{customer.name})"),
        CommandType.INSERT,
    )
    command = Mock()
    parameter = {
        "paid": True,
        "total": Decimal("9.50"),
        "day": date(2024, 5, 1),
        "customer": Customer("ann", Address("Oslo")),
    }

    DefaultParameterBinder(statement.get_bound_statement(parameter)).bind(command, parameter)

    command.bind.assert_called_once_with([1, "9.50", "2024-05-01", "ann"])


def test_binder_scalar_parameter_fills_every_marker() -> None:
    statement = MappedStatement("t.q", SqlSource("SELECT * FROM t WHERE a = #{x} OR b = #{y}"), CommandType.SELECT)
    command = Mock()

    DefaultParameterBinder(statement.get_bound_statement(7)).bind(command, 7)

    command.bind.assert_called_once_with([7, 7])
