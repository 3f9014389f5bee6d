import datetime
from dataclasses import dataclass, field
from decimal import Decimal

import pytest
from resultset import BindingError, EndOfResults, RowFormat, ValueType, column
from resultset.mapping import mapping_for, mapping_for_template


@dataclass
class User:
    id: int = column('Id')
    name: str = column('Name')
    email: str = column('Email', default='none@example.com')
    tags: list = column('Tags', ValueType.JSON, default_factory=list)


@dataclass(frozen=True)
class FrozenUser:
    Id: int = 0
    Name: str = ''


class PlainUser:
    Id: int
    Name: str
    Nickname: str | None

    def __init__(self):
        raise AssertionError('constructor must not run')


class Record:

    def __init__(self):
        self.Id = 0
        self.Name = 'unset'
        self.tag = 'keep'


def test_object_mode_populates_matching_fields(make_result):
    """Test declared fields read their columns; extra columns are ignored"""
    result = make_result(['Id', 'Name', 'Extra'], [('1', 'a', 'x')])
    result.set_object_type(User)

    user = result.fetch_row()

    assert result.row_format is RowFormat.OBJECT
    assert isinstance(user, User)
    assert user.id == 1
    assert user.name == 'a'
    assert user.email == 'none@example.com'
    assert user.tags == []
    assert not hasattr(user, 'Extra')


def test_constructor_is_bypassed(make_result, user_columns, user_rows):
    result = make_result(user_columns, user_rows)
    result.set_object_type(PlainUser)

    user = result.fetch_row()

    assert (user.Id, user.Name) == (1, 'a')
    assert user.Nickname is None


def test_frozen_dataclass(make_result, user_columns, user_rows):
    result = make_result(user_columns, user_rows)
    result.set_object_type(FrozenUser)

    assert result.fetch_row() == FrozenUser(Id=1, Name='a')


def test_get_objects_from_explicit_cursor(make_result, user_columns, user_rows):
    """Test get_objects returns the remaining rows without changing the mode"""
    result = make_result(user_columns, user_rows)
    result.seek(1)

    users = result.get_objects(User)

    assert [u.id for u in users] == [2, 3]
    assert result.row_format is RowFormat.ASSOCIATIVE
    assert result.get_objects(User) == []
    with pytest.raises(EndOfResults):
        result.fetch_row()


def test_get_objects_on_empty_result(make_result, user_columns):
    assert make_result(user_columns, []).get_objects(User) == []


def test_template_is_copied_not_modified(make_result, user_columns, user_rows):
    template = Record()
    result = make_result(user_columns, user_rows)
    result.set_template(template)

    first, second = result.fetch_row(), result.fetch_row()

    assert first is not template
    assert (first.Id, first.Name, first.tag) == (1, 'a', 'keep')
    assert (second.Id, second.Name) == (2, 'b')
    assert (template.Id, template.Name) == (0, 'unset')


def test_template_must_be_instance(make_result, user_columns, user_rows):
    result = make_result(user_columns, user_rows)
    with pytest.raises(BindingError):
        result.set_template(Record)


def test_object_mode_without_target(make_result, user_columns, user_rows):
    result = make_result(user_columns, user_rows)
    result.set_row_format(RowFormat.OBJECT)

    with pytest.raises(BindingError):
        result.fetch_row()


def test_load_into_existing_object(make_result, user_columns, user_rows):
    """Test load_into fills an object from the current row without advancing"""
    result = make_result(user_columns, user_rows)
    record = Record()
    result.seek(1)

    assert result.load_into(record) is record
    assert (record.Id, record.Name, record.tag) == (2, 'b', 'keep')
    assert result.position == 1


def test_value_type_inference():
    """Test explicit value types win over annotations"""
    @dataclass
    class Row:
        count: int | None = None
        ratio: float = 0.0
        label: str = ''
        payload: dict = field(default_factory=dict)
        raw: bytes = column(value_type=ValueType.STREAM)
        other: object = None

    types = {fm.attr: fm.value_type for fm in mapping_for(Row).fields}

    assert types == {
        'count': ValueType.INTEGER,
        'ratio': ValueType.FLOAT,
        'label': ValueType.STRING,
        'payload': ValueType.JSON,
        'raw': ValueType.STREAM,
        'other': ValueType.STRING,
        }


def test_mapping_is_cached():
    assert mapping_for(User) is mapping_for(User)


def test_template_mapping_uses_attribute_values():
    mapping = mapping_for_template(Record())
    types = {fm.attr: fm.value_type for fm in mapping.fields}

    assert types == {'Id': ValueType.INTEGER, 'Name': ValueType.STRING, 'tag': ValueType.STRING}


def test_unlisted_annotations_keep_driver_values(make_result):
    """Test bool, date, datetime and Decimal fields receive the driver's own objects"""
    @dataclass
    class Entry:
        active: bool = None
        day: datetime.date = None
        stamp: datetime.datetime | None = None
        amount: Decimal = None

    day = datetime.date(2024, 1, 15)
    stamp = datetime.datetime(2024, 1, 15, 9, 30)
    result = make_result(['active', 'day', 'stamp', 'amount'],
                         [(True, day, stamp, Decimal('10.50'))])

    entry = result.get_objects(Entry)[0]

    assert entry.active is True
    assert entry.day is day
    assert entry.stamp is stamp
    assert entry.amount == Decimal('10.50')
    assert isinstance(entry.amount, Decimal)
