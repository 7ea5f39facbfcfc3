"""
Unit tests for single-sample type inference.
"""

import pytest

from tabload.errors import EmptySourceError, SchemaConflictError
from tabload.schema import ColumnType, TypeInferenceEngine
from tabload.schema.inference import is_datetime, is_integer
from tabload.sources import CsvRowSource


@pytest.mark.unit
class TestClassify:
    """Test per-value classification precedence"""

    @pytest.mark.parametrize('value', ['0', '42', '-7', '007', '123456789012345678901234567890'])
    def test_integers(self, value):
        assert TypeInferenceEngine.classify(value) == ColumnType.INTEGER

    @pytest.mark.parametrize('value', ['2024-01-05T00:00:00Z', '2024-01-05', 'Jan 5 2024', '2024-01-05 10:30:00+02:00'])
    def test_datetimes(self, value):
        assert TypeInferenceEngine.classify(value) == ColumnType.DATETIME

    @pytest.mark.parametrize('value', ['Alice', '', '   ', 'hello world'])
    def test_strings(self, value):
        assert TypeInferenceEngine.classify(value) == ColumnType.STRING

    def test_none_is_string(self):
        assert TypeInferenceEngine.classify(None) == ColumnType.STRING

    def test_integer_wins_over_datetime(self):
        """A bare year is also a valid date; integer is tested first"""
        assert is_datetime('2024')
        assert TypeInferenceEngine.classify('2024') == ColumnType.INTEGER

    def test_integer_pattern_is_anchored(self):
        assert is_integer('12')
        assert not is_integer('12 ')
        assert not is_integer('1-2')
        assert not is_integer('')


@pytest.mark.unit
class TestInfer:
    """Test schema inference from row sequences"""

    def test_first_row_decides(self):
        rows = [
            {'id': '42', 'ts': '2024-01-05T00:00:00Z', 'name': 'Alice'},
            {'id': 'abc', 'ts': 'not a date', 'name': '7'},
        ]

        schema = TypeInferenceEngine().infer(rows)

        assert [(c.name, c.type) for c in schema] == [
            ('id', ColumnType.INTEGER),
            ('ts', ColumnType.DATETIME),
            ('name', ColumnType.STRING),
        ]

    def test_later_rows_are_not_read(self):
        def rows():
            yield {'id': '1'}
            raise AssertionError('second row must not be read')

        schema = TypeInferenceEngine().infer(rows())
        assert schema.type_of('id') == ColumnType.INTEGER

    def test_explicit_columns_fix_order(self):
        schema = TypeInferenceEngine().infer([{'b': 'x', 'a': '1'}], columns=['a', 'b'])
        assert schema.names == ('a', 'b')

    def test_empty_first_value_is_string(self):
        schema = TypeInferenceEngine().infer([{'id': '', 'n': '3'}])
        assert schema.type_of('id') == ColumnType.STRING
        assert schema.type_of('n') == ColumnType.INTEGER

    def test_no_rows_raises(self):
        with pytest.raises(EmptySourceError, match='no data rows'):
            TypeInferenceEngine().infer([], columns=['id'])

    def test_empty_header_raises(self):
        with pytest.raises(EmptySourceError, match='no header row'):
            TypeInferenceEngine().infer([], columns=[])

    def test_duplicate_header_raises(self):
        with pytest.raises(SchemaConflictError) as exc_info:
            TypeInferenceEngine().infer([{'id': '1'}], columns=['id', 'name', 'id'])
        assert exc_info.value.duplicates == ['id']


@pytest.mark.unit
class TestInferFromFile:
    """Test inference against RowStream sources"""

    def test_header_taken_from_stream(self, write_csv):
        path = write_csv('people.csv', ['id', 'ts', 'name'], [['42', '2024-01-05T00:00:00Z', 'Alice'], ['abc', 'x', 'y']])

        with CsvRowSource(path).open() as rows:
            schema = TypeInferenceEngine().infer(rows)

        assert str(schema) == 'id: integer, ts: datetime, name: string'

    def test_header_only_file(self, write_csv):
        path = write_csv('empty.csv', ['id', 'name'])

        with CsvRowSource(path).open() as rows:
            with pytest.raises(EmptySourceError) as exc_info:
                TypeInferenceEngine().infer(rows)

        assert exc_info.value.reason == 'no data rows'
        assert 'empty.csv' in exc_info.value.source

    def test_zero_byte_file(self, write_csv):
        path = write_csv('nothing.csv', None)

        with CsvRowSource(path).open() as rows:
            with pytest.raises(EmptySourceError, match='no header row'):
                TypeInferenceEngine().infer(rows)
