"""
Test values fixtures for result set tests.

Rows are shaped like what the drivers return: tuples in column order.
"""
import json

import pytest


@pytest.fixture
def user_columns():
    return ['Id', 'Name']


@pytest.fixture
def user_rows():
    """Three rows of (Id, Name)"""
    return [(1, 'a'), (2, 'b'), (3, 'c')]


@pytest.fixture
def typed_columns():
    return ['Id', 'Score', 'Label', 'Settings', 'Blob']


@pytest.fixture
def typed_rows():
    """Raw cells as a text-oriented driver would hand them over"""
    return [
        ('7', '2.5', 12, json.dumps({'theme': 'dark'}), b'\x00\x01'),
        ('8', '0.5', 'x', '[1, 2]', None),
    ]
