import pytest

from cabbagesql.value import DataType, Value, decode_data_type, equal_value


def test_data_type_names():
    assert str(decode_data_type("x")) == "VARCHAR(100)"
    assert str(decode_data_type(3)) == "INT"
    assert str(decode_data_type(None)) == "NULL"
    assert str(decode_data_type(True)) == "BOOL"


def test_data_type_codes():
    assert int(decode_data_type(None)) == 0x01
    assert int(decode_data_type("x")) == 0x05


def test_value_rendering():
    assert str(Value(DataType.NULL)) == "NULL"
    assert str(Value(DataType.BOOL, True)) == "TRUE"
    assert str(Value(DataType.BOOL, False)) == "FALSE"
    assert str(Value(DataType.STRING, "abc")) == "abc"
    assert str(Value(DataType.INT, 42)) == "42"


def test_float_renders_four_decimals():
    assert str(Value(DataType.FLOAT, 2.5)) == "2.5000"


def test_null_sorts_first():
    null = Value(DataType.NULL)
    number = Value(DataType.INT, 7)
    assert null.compare(Value(DataType.NULL)) == 0
    assert null.compare(number) < 0
    assert number.compare(null) > 0


@pytest.mark.parametrize(
    "small, large",
    [
        (Value(DataType.INT, 1), Value(DataType.INT, 2)),
        (Value(DataType.FLOAT, 1.5), Value(DataType.FLOAT, 2.5)),
        (Value(DataType.STRING, "a"), Value(DataType.STRING, "b")),
        (Value(DataType.BOOL, False), Value(DataType.BOOL, True)),
        (Value(DataType.INT, 1), Value(DataType.FLOAT, 1.5)),
        (Value(DataType.FLOAT, 0.5), Value(DataType.INT, 1)),
    ],
)
def test_compare_is_antisymmetric(small, large):
    assert small.compare(large) < 0
    assert large.compare(small) > 0
    assert small.compare(small) == 0


def test_mixed_numeric_equal():
    assert Value(DataType.INT, 3).compare(Value(DataType.FLOAT, 3.0)) == 0


def test_incomparable_types():
    assert Value(DataType.INT, 1).compare(Value(DataType.STRING, "1")) is None
    assert Value(DataType.BOOL, True).compare(Value(DataType.INT, 1)) is None


@pytest.mark.parametrize(
    "obj, expected",
    [
        (None, DataType.NULL),
        (True, DataType.BOOL),
        (False, DataType.BOOL),
        (3, DataType.INT),
        (1.5, DataType.FLOAT),
        ("x", DataType.STRING),
        (b"x", DataType.STRING),
    ],
)
def test_decode_data_type(obj, expected):
    assert decode_data_type(obj) == expected


def test_equal_value_handles_missing():
    assert equal_value(None, Value(DataType.INT, 1)) is False
    assert equal_value(Value(DataType.INT, 1), None) is False


def test_equal_value_requires_same_type():
    assert equal_value(Value(DataType.INT, 1), Value(DataType.STRING, "1")) is False
    assert equal_value(Value(DataType.INT, 1), Value(DataType.INT, 1)) is True
    assert equal_value(Value(DataType.INT, 1), Value(DataType.INT, 2)) is False


def test_equal_value_uses_rendered_precision():
    assert equal_value(Value(DataType.FLOAT, 1.00001), Value(DataType.FLOAT, 1.00002)) is True


def test_values_are_hashable():
    assert len({Value(DataType.INT, 1), Value(DataType.INT, 1), Value(DataType.STRING, "1")}) == 2